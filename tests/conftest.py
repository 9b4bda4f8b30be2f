import oracledb
import pytest

from pdbctl import CDB, LifecycleSettings


class FakeConnection:
    """Scripted stand-in for an ``oracledb`` connection.

    ``on(pattern, *results)`` answers any statement containing ``pattern``.
    Each result is a list of rows or an exception to raise; results are used
    in order and the last one repeats. Statements without a rule return no
    rows.
    """

    def __init__(self):
        self.rules = {}
        self.executed = []
        self.closed = False

    def on(self, pattern, *results):
        self.rules[pattern] = list(results)
        return self

    def cursor(self):
        return FakeCursor(self)

    def close(self):
        self.closed = True

    def matching(self, pattern):
        return [sql for sql, _ in self.executed if pattern in sql]

    def _respond(self, sql):
        for pattern, results in self.rules.items():
            if pattern in sql:
                return results.pop(0) if len(results) > 1 else results[0]
        return []


class FakeCursor:
    def __init__(self, connection):
        self.connection = connection
        self._rows = []
        self.closed = False

    def execute(self, sql, params=None):
        self.connection.executed.append((sql, params))
        result = self.connection._respond(sql)
        if isinstance(result, Exception):
            raise result
        self._rows = list(result)

    def fetchone(self):
        return self._rows[0] if self._rows else None

    def fetchall(self):
        return list(self._rows)

    def close(self):
        self.closed = True


def ora_error(text="ORA-65019: pluggable database already open"):
    return oracledb.DatabaseError(text)


ROOT_DIR = "C:\\oradata\\CDB1\\"
SEED_DIR = "C:\\oradata\\CDB1\\PDBSEED\\"


@pytest.fixture
def conn():
    """A healthy CDB root: standard seed layout, no PDBs, no sessions."""
    fake = FakeConnection()
    fake.on("SYS_CONTEXT", [("CDB$ROOT",)])
    fake.on("NOT REGEXP_LIKE", [(ROOT_DIR,)])
    fake.on("PDBSEED[", [(SEED_DIR,)])
    fake.on("FROM DBA_PDBS", [(0,)])
    fake.on("gv$session", [])
    fake.on("OPEN_MODE", [("READ WRITE",)])
    fake.on("dba_pdb_saved_states", [("OPEN", "NO")])
    return fake


@pytest.fixture
def cdb(conn):
    return CDB(conn, settings=LifecycleSettings(kill_max_attempts=5, kill_delay_seconds=0))


@pytest.fixture
def no_sleep(monkeypatch):
    delays = []
    monkeypatch.setattr("pdbctl.pdb.time.sleep", delays.append)
    return delays


def session_rows(count):
    return [(1, 100 + i, 2000 + i, "APP", "ACTIVE", "host1", "python", " ") for i in range(count)]
