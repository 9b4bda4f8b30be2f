import pytest

from pdbctl.exceptions import InvalidIdentifierError
from pdbctl.sqltext import (
    escape_single_quotes,
    mask,
    normalize_for_compare,
    normalize_windows_dir,
    quote_literal,
    validate_identifier,
    validate_password,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("C:/oradata/CDB1", "C:\\oradata\\CDB1\\"),
        ("C:\\oradata\\CDB1\\", "C:\\oradata\\CDB1\\"),
        ("/u01/oradata/CDB1/", "\\u01\\oradata\\CDB1\\"),
        ("", "\\"),
    ],
)
def test_normalize_windows_dir(raw, expected):
    assert normalize_windows_dir(raw) == expected


@pytest.mark.parametrize("raw", ["C:/a/b", "C:\\a\\b\\", "x", "", "D:/mixed\\seps/"])
def test_normalization_is_idempotent(raw):
    once = normalize_windows_dir(raw)
    assert normalize_windows_dir(once) == once
    assert normalize_for_compare(normalize_for_compare(raw)) == normalize_for_compare(raw)


def test_compare_form_ignores_case_and_separators():
    assert normalize_for_compare("c:/oradata/cdb1/pdbseed") == normalize_for_compare("C:\\ORADATA\\CDB1\\PDBSEED\\")


def test_quote_literal_escapes_single_quotes():
    assert escape_single_quotes("O'Brien's") == "O''Brien''s"
    assert quote_literal("C:\\it's\\") == "'C:\\it''s\\'"


@pytest.mark.parametrize("name", ["PDB_TEST", "pdb_2025_007_031_017_020_008", "PDB$SEED", "a#1"])
def test_valid_identifiers_pass_through(name):
    assert validate_identifier(name) == name


@pytest.mark.parametrize(
    "name", ["", "1pdb", "pdb name", "pdb;drop", "x' OR '1'='1", "a" * 129, None, "PDB1\n", "PDB1\r\n", "\nPDB1"]
)
def test_invalid_identifiers_are_rejected(name):
    with pytest.raises(InvalidIdentifierError):
        validate_identifier(name, "PDB name", operation="create")


def test_invalid_identifier_is_a_value_error():
    with pytest.raises(ValueError):
        validate_identifier("bad name")


@pytest.mark.parametrize("password", ["", 'pa"ss', "line\nbreak", None])
def test_invalid_passwords_are_rejected(password):
    with pytest.raises(InvalidIdentifierError):
        validate_password(password)


def test_password_with_symbols_is_allowed():
    assert validate_password("S3cr3t!#%") == "S3cr3t!#%"


def test_mask_hides_secret():
    assert mask('IDENTIFIED BY "hunter2"', "hunter2") == 'IDENTIFIED BY "********"'
    assert mask("nothing here", "") == "nothing here"
