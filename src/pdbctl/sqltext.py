"""Helpers for building administrative SQL text.

DDL such as ``CREATE PLUGGABLE DATABASE`` cannot take bind variables, so
names and credentials are checked against an allow-list here before they are
interpolated. Datafile paths come from the catalog and are quoted as string
literals.
"""
import re

from .exceptions import InvalidIdentifierError

# Unquoted Oracle identifier: leading letter, then letters, digits, _ $ #.
# Always applied with fullmatch; a trailing newline must not pass.
IDENTIFIER_RE = re.compile(r"[A-Za-z][A-Za-z0-9_$#]{0,127}")
_FORBIDDEN_PASSWORD_CHARS = ('"', "\x00", "\n", "\r")


def normalize_windows_dir(path):
    """Use backslash separators and guarantee a trailing backslash."""
    path = path.replace("/", "\\")
    if not path.endswith("\\"):
        path += "\\"
    return path


def normalize_for_compare(path):
    return normalize_windows_dir(path).upper()


def escape_single_quotes(text):
    return text.replace("'", "''")


def quote_literal(text):
    return f"'{escape_single_quotes(text)}'"


def validate_identifier(name, what="identifier", operation=None):
    """Return ``name`` unchanged if it is a plain unquoted identifier."""
    if not isinstance(name, str) or not IDENTIFIER_RE.fullmatch(name):
        raise InvalidIdentifierError(
            f"invalid {what} {name!r}: expected a letter followed by letters, digits, _, $ or #",
            operation=operation,
        )
    return name


def validate_password(password, operation=None, pdb_name=None):
    if not isinstance(password, str) or not password:
        raise InvalidIdentifierError("admin password must be a non-empty string",
                                     operation=operation, pdb_name=pdb_name)
    if any(c in password for c in _FORBIDDEN_PASSWORD_CHARS):
        raise InvalidIdentifierError("admin password contains a double quote, NUL or line break",
                                     operation=operation, pdb_name=pdb_name)
    return password


def mask(text, secret):
    """Replace every occurrence of ``secret`` in ``text`` for logging."""
    if not secret:
        return text
    return text.replace(secret, "********")
