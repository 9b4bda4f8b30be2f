import logging

import pytest

from conftest import ora_error, session_rows
from pdbctl import cli


@pytest.fixture(autouse=True)
def keep_log_handlers(monkeypatch, request):
    if request.node.name != "test_configure_logging_levels":
        monkeypatch.setattr(cli, "configure_logging", lambda verbosity: None)


@pytest.fixture
def connected(monkeypatch, cdb):
    monkeypatch.setattr(cli.CDB, "connect", lambda *args, **kwargs: cdb)
    return cdb


def test_parser_subcommands():
    args = cli.parse_args(["--database", "CDB1", "-vv", "teardown", "PDB1", "--kill-sessions"])
    assert args.command == "teardown"
    assert args.kill_sessions is True
    assert args.instances_all is None
    assert args.verbose == 2


def test_create_requires_credentials():
    with pytest.raises(SystemExit) as excinfo:
        cli.parse_args(["--database", "CDB1", "create"])
    assert excinfo.value.code == 2


def test_configure_logging_levels(monkeypatch):
    calls = []
    monkeypatch.setattr(cli.logging, "basicConfig", lambda **kwargs: calls.append(kwargs["level"]))
    for verbosity in (0, 1, 2, 3):
        cli.configure_logging(verbosity)
    assert calls == [logging.WARNING, logging.INFO, logging.DEBUG, logging.DEBUG]


def test_create_prints_name_and_directory(connected, capsys):
    rc = cli.main(["--database", "CDB1", "create", "--name", "PDB_TEST",
                   "--admin-user", "pdbadmin", "--admin-password", "Secret1"])
    assert rc == 0
    assert capsys.readouterr().out == "PDB_TEST\tC:\\oradata\\CDB1\\PDB_TEST\\\n"


def test_teardown_command(connected, conn, capsys):
    assert cli.main(["--database", "CDB1", "teardown", "PDB_TEST"]) == 0
    assert conn.matching("DROP PLUGGABLE DATABASE PDB_TEST INCLUDING DATAFILES")
    assert "dropped" in capsys.readouterr().out


def test_sessions_listing(connected, conn, capsys):
    conn.on("gv$session", session_rows(2))
    assert cli.main(["--database", "CDB1", "sessions", "PDB1"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0].split("\t")[:3] == ["1", "100", "2000"]
    assert len(lines) == 2


def test_sessions_kill_until_gone(connected, conn, capsys, no_sleep):
    conn.on("gv$session", session_rows(1), [])
    assert cli.main(["--database", "CDB1", "sessions", "PDB1", "--kill", "--until-gone"]) == 0
    assert "clear after 1 round(s)" in capsys.readouterr().out


def test_status_command(connected, capsys):
    assert cli.main(["--database", "CDB1", "status", "PDB1"]) == 0
    out = capsys.readouterr().out
    assert "open_mode\tREAD WRITE" in out
    assert "saved_state\tOPEN\trestricted=NO" in out


def test_list_command(connected, conn, capsys):
    conn.on("V$CONTAINERS", [("CDB$ROOT",), ("PDB1",)])
    assert cli.main(["--database", "CDB1", "list"]) == 0
    assert capsys.readouterr().out.splitlines() == ["CDB$ROOT\tREAD WRITE", "PDB1\tREAD WRITE"]


def test_lifecycle_error_exits_nonzero(connected, conn, caplog):
    conn.on("DROP PLUGGABLE", ora_error("ORA-65179: cannot keep datafiles"))
    assert cli.main(["--database", "CDB1", "teardown", "PDB_TEST"]) == 1
    assert "drop PDB_TEST" in caplog.text


def test_missing_configuration_exits_nonzero(tmp_path):
    assert cli.main(["--database", "CDB1", "--config", str(tmp_path / "none.yaml"), "list"]) == 1
