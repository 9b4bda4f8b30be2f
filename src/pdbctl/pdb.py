import dataclasses
import logging
import time
from typing import NamedTuple

import oracledb

from . import statements
from .exceptions import ResourceBusyError
from .sqltext import validate_identifier

LOG = logging.getLogger(__name__)

USER_SESSIONS_SQL = """
SELECT s.inst_id,
       s.sid,
       s.serial#,
       NVL(s.username, ' '),
       NVL(s.status,   ' '),
       NVL(s.machine,  ' '),
       NVL(s.program,  ' '),
       NVL(s.module,   ' ')
FROM   gv$session s
WHERE  s.type = 'USER'
AND    s.con_id = (SELECT con_id FROM v$pdbs WHERE name = UPPER(:pdb_name))
ORDER  BY s.inst_id, s.sid"""


@dataclasses.dataclass(frozen=True)
class UserSession:
    """A USER session attached to a PDB, as listed by GV$SESSION."""

    inst_id: int
    sid: int
    serial: int
    username: str = " "
    status: str = " "
    machine: str = " "
    program: str = " "
    module: str = " "

    @property
    def kill_sql(self):
        # RAC: 'sid,serial#,@inst_id' would pin the instance.
        return f"ALTER SYSTEM KILL SESSION '{self.sid:d},{self.serial:d}' IMMEDIATE"


class SavedState(NamedTuple):
    state: str
    restricted: str


class PDB:
    """A Pluggable Database (PDB) managed through its parent CDB's root connection."""

    def __init__(self, name, cdb):
        self.name = validate_identifier(name, "PDB name")
        self.cdb = cdb
        self.connection = cdb.connection
        self._cursor = self.connection.cursor()

    def __repr__(self):
        return f"PDB({self.name!r})"

    def execute(self, query, operation, params=None, log_sql=None):
        return statements.execute(self._cursor, query, operation, pdb_name=self.name,
                                  params=params, log_sql=log_sql)

    def fetchone(self):
        return self._cursor.fetchone()

    def fetchall(self):
        return self._cursor.fetchall()

    # -- state transitions -------------------------------------------------

    def open_read_write(self):
        LOG.info("Opening %s READ WRITE", self.name)
        self.execute(f"ALTER PLUGGABLE DATABASE {self.name} OPEN READ WRITE", "open")

    def save_state(self):
        """Register the PDB to reopen automatically when the CDB restarts."""
        LOG.info("Saving state of %s", self.name)
        self.execute(f"ALTER PLUGGABLE DATABASE {self.name} SAVE STATE", "save state")

    def close_immediate(self, instances_all=None):
        """Close the PDB; ``instances_all`` adds ``INSTANCES=ALL`` for RAC."""
        if instances_all is None:
            instances_all = self.cdb.settings.instances_all
        sql = f"ALTER PLUGGABLE DATABASE {self.name} CLOSE IMMEDIATE"
        if instances_all:
            sql += " INSTANCES=ALL"
        LOG.info("Closing %s%s", self.name, " on all instances" if instances_all else "")
        self.execute(sql, "close")

    def discard_state(self):
        LOG.info("Discarding saved state of %s", self.name)
        self.execute(f"ALTER PLUGGABLE DATABASE {self.name} DISCARD STATE", "discard state")

    def drop_including_datafiles(self):
        """Drop the PDB and delete its datafiles. It must be closed everywhere first."""
        LOG.info("Dropping %s INCLUDING DATAFILES", self.name)
        self.execute(f"DROP PLUGGABLE DATABASE {self.name} INCLUDING DATAFILES", "drop")

    # -- diagnostics ---------------------------------------------------------

    def open_mode(self):
        """Retrieves the latest open mode of the PDB."""
        self.execute("SELECT OPEN_MODE FROM V$PDBS WHERE NAME = UPPER(:pdb_name)",
                     "query open mode", params={"pdb_name": self.name})
        result = self.fetchone()
        return result[0] if result else "UNKNOWN"

    def saved_state(self):
        """Return the DBA_PDB_SAVED_STATES row, or None when there is none."""
        self.execute("SELECT state, restricted FROM dba_pdb_saved_states WHERE con_name = UPPER(:pdb_name)",
                     "query saved state", params={"pdb_name": self.name})
        row = self.fetchone()
        if row is None:
            return None
        return SavedState(*row)

    # -- sessions --------------------------------------------------------

    def user_sessions(self):
        self.execute(USER_SESSIONS_SQL, "list user sessions", params={"pdb_name": self.name})
        return [UserSession(*row) for row in self.fetchall()]

    def _kill(self, sessions):
        for session in sessions:
            try:
                self._cursor.execute(session.kill_sql)
            except oracledb.DatabaseError as exc:
                LOG.warning("Failed to kill session sid=%d serial=%d (inst=%d) in %s: %s",
                            session.sid, session.serial, session.inst_id, self.name, exc)

    def kill_user_sessions(self):
        """Kill every USER session once. Returns the number of sessions targeted."""
        sessions = self.user_sessions()
        if not sessions:
            LOG.info("No USER sessions found in %s", self.name)
            return 0
        self._kill(sessions)
        return len(sessions)

    def kill_user_sessions_until_gone(self, max_attempts=None, delay=None):
        """Kill USER sessions until none remain or the attempts run out.

        Each attempt lists the sessions, returns if there are none, otherwise
        kills them and sleeps ``delay`` seconds. After ``max_attempts`` rounds a
        final listing decides between success and ``ResourceBusyError``.
        Returns the number of rounds in which sessions were killed.
        """
        settings = self.cdb.settings
        if max_attempts is None:
            max_attempts = settings.kill_max_attempts
        elif max_attempts <= 0:
            raise ValueError("max_attempts must be positive")
        if delay is None:
            delay = settings.kill_delay_seconds
        elif delay < 0:
            raise ValueError("delay must not be negative")

        for attempt in range(1, max_attempts + 1):
            sessions = self.user_sessions()
            if not sessions:
                LOG.info("No USER sessions remain in %s (after %d attempt(s))", self.name, attempt - 1)
                return attempt - 1
            LOG.info("Attempt %d/%d: %d USER session(s) found in %s, killing",
                     attempt, max_attempts, len(sessions), self.name)
            self._kill(sessions)
            time.sleep(delay)

        remaining = self.user_sessions()
        if not remaining:
            LOG.info("No USER sessions remain in %s (after %d attempts)", self.name, max_attempts)
            return max_attempts
        raise ResourceBusyError(
            f"after {max_attempts} attempts, {len(remaining)} USER session(s) still remain",
            remaining=len(remaining), attempts=max_attempts,
            operation="kill sessions", pdb_name=self.name,
        )

    def close(self):
        """Releases the cursor; the connection belongs to the CDB."""
        self._cursor.close()
