import logging

import oracledb

from . import config, statements
from .exceptions import (
    AlreadyExistsError,
    AmbiguousResultError,
    InconsistentStateError,
    InvalidIdentifierError,
    LifecycleError,
    NotFoundError,
    PreconditionError,
)
from .naming import generate_pdb_name
from .pdb import PDB
from .sqltext import (
    mask,
    normalize_for_compare,
    normalize_windows_dir,
    quote_literal,
    validate_identifier,
    validate_password,
)

LOG = logging.getLogger(__name__)

ROOT_CONTAINER = "CDB$ROOT"
SEED_CONTAINER = "PDB$SEED"
# Directory name of PDB$SEED's datafiles under the root directory.
SEED_DIRECTORY_NAME = "PDBSEED"

ROOT_DATAFILE_DIR_SQL = r"""
SELECT DISTINCT
       SUBSTR(name, 1, REGEXP_INSTR(name, 'SYSTEM01\.DBF', 1, 1, 0, 'i') - 1)
FROM   v$datafile
WHERE  REGEXP_LIKE(name, 'SYSTEM01\.DBF', 'i')
  AND  NOT REGEXP_LIKE(name, '[\\/]{1}PDB[^\\/]*', 'i')"""

SEED_DATAFILE_DIR_SQL = r"""
SELECT DISTINCT
       SUBSTR(name, 1, REGEXP_INSTR(name, 'SYSTEM01\.DBF', 1, 1, 0, 'i') - 1)
FROM   v$datafile
WHERE  REGEXP_LIKE(name, '[\\/]{1}PDBSEED[\\/]{1}SYSTEM01\.DBF', 'i')"""

PDB_COUNT_SQL = "SELECT COUNT(*) FROM DBA_PDBS WHERE PDB_NAME = UPPER(:pdb_name)"


def verify_seed_directory_matches(root_dir, seed_dir):
    """Raise ``PreconditionError`` unless ``seed_dir`` is ``<root_dir>PDBSEED\\``."""
    expected = normalize_for_compare(normalize_windows_dir(root_dir) + SEED_DIRECTORY_NAME + "\\")
    actual = normalize_for_compare(seed_dir)
    if expected != actual:
        raise PreconditionError(f"expected PDBSEED at {expected} but found {actual}",
                                operation="verify seed directory")


class CDB:
    """A Container Database (CDB) root connection and the PDB lifecycle run from it."""

    def __init__(self, connection, settings=None, db_name=None):
        self.connection = connection
        self.settings = settings or config.LifecycleSettings()
        self.db_name = db_name
        self._cursor = self.connection.cursor()
        self._owns_connection = False

    @classmethod
    def connect(cls, db_name, config_path=None):
        """Connect to ``db_name`` using parameters from ``pdbctl.yaml``."""
        cfg = config.load_config(config_path)
        params = config.connect_params(db_name, cfg)
        connection = oracledb.connect(params=params)
        LOG.info("Connected to '%s'", db_name)
        cdb = cls(connection, settings=config.lifecycle_settings(cfg), db_name=db_name)
        cdb._owns_connection = True
        return cdb

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def execute(self, query, operation, pdb_name=None, params=None, log_sql=None):
        return statements.execute(self._cursor, query, operation, pdb_name=pdb_name,
                                  params=params, log_sql=log_sql)

    def pdb(self, name):
        return PDB(name, cdb=self)

    def discover_pdbs(self):
        """Queries the database to dynamically retrieve all available containers.

        Containers whose names need quoting cannot be managed here and are
        skipped with a warning.
        """
        self.execute("SELECT NAME FROM V$CONTAINERS ORDER BY CON_ID", "discover containers")
        pdbs = []
        for (name,) in self._cursor.fetchall():
            try:
                pdbs.append(self.pdb(name))
            except InvalidIdentifierError as exc:
                LOG.warning("Skipping container %r: %s", name, exc)
        return pdbs

    # -- guards --------------------------------------------------------------

    def current_container(self):
        self.execute("SELECT SYS_CONTEXT('USERENV','CON_NAME') FROM dual", "determine current container")
        row = self._cursor.fetchone()
        if row is None:
            raise NotFoundError("no container name returned", operation="determine current container")
        return row[0]

    def ensure_root(self):
        con_name = self.current_container()
        if str(con_name).upper() != ROOT_CONTAINER:
            raise PreconditionError(f"not connected to {ROOT_CONTAINER} (current: {con_name})",
                                    operation="ensure root")

    # -- datafile directories ------------------------------------------------

    def _single_directory(self, query, operation):
        self.execute(query, operation)
        candidates = []
        for (value,) in self._cursor.fetchall():
            if value is None:
                continue
            normalized = normalize_windows_dir(value)
            if normalized not in candidates:
                candidates.append(normalized)
        if not candidates:
            raise NotFoundError("no matching SYSTEM01.DBF datafile in V$DATAFILE", operation=operation)
        if len(candidates) > 1:
            raise AmbiguousResultError(
                f"{len(candidates)} distinct directories found: {', '.join(candidates)}",
                candidates=candidates, operation=operation,
            )
        return candidates[0]

    def root_datafile_directory(self):
        """Directory holding CDB$ROOT's SYSTEM01.DBF, backslash separated with a trailing backslash."""
        return self._single_directory(ROOT_DATAFILE_DIR_SQL, "resolve root directory")

    def seed_datafile_directory(self):
        """Directory holding PDB$SEED's SYSTEM01.DBF, in the same form."""
        return self._single_directory(SEED_DATAFILE_DIR_SQL, "resolve seed directory")

    def verify_seed_directory(self):
        verify_seed_directory_matches(self.root_datafile_directory(), self.seed_datafile_directory())

    # -- catalog -----------------------------------------------------------

    def pdb_count(self, name):
        self.execute(PDB_COUNT_SQL, "count PDBs", pdb_name=name, params={"pdb_name": name})
        return self._cursor.fetchone()[0]

    def pdb_exists(self, name):
        return self.pdb_count(name) > 0

    def verify_dropped(self, name):
        """Raise ``InconsistentStateError`` if DBA_PDBS still lists ``name``."""
        count = self.pdb_count(name)
        if count != 0:
            raise InconsistentStateError("drop not confirmed: still listed in DBA_PDBS",
                                         operation="verify dropped", pdb_name=name)

    # -- creation ------------------------------------------------------------

    def create_pdb_from_seed(self, name, admin_user, admin_password):
        """Create ``name`` from PDB$SEED and return its datafile directory.

        The seed files are copied with FILE_NAME_CONVERT into
        ``<root directory><name>\\``. The existence check only fails fast; the
        CREATE statement itself rejects a name created concurrently.
        """
        self.ensure_root()
        self.verify_seed_directory()
        return self._create_from_seed(name, admin_user, admin_password)

    def _create_from_seed(self, name, admin_user, admin_password):
        operation = "create"
        validate_identifier(name, "PDB name", operation=operation)
        validate_identifier(admin_user, "admin user", operation=operation)
        validate_password(admin_password, operation=operation, pdb_name=name)

        if self.pdb_exists(name):
            raise AlreadyExistsError("PDB already exists", operation=operation, pdb_name=name)

        root_dir = self.root_datafile_directory()
        seed_dir = normalize_windows_dir(root_dir + SEED_DIRECTORY_NAME + "\\")
        dest_dir = normalize_windows_dir(root_dir + name + "\\")

        sql = (
            f"CREATE PLUGGABLE DATABASE {name} ADMIN USER {admin_user} "
            f'IDENTIFIED BY "{admin_password}" '
            f"FILE_NAME_CONVERT = ({quote_literal(seed_dir)}, {quote_literal(dest_dir)})"
        )
        LOG.info("Creating %s from %s into %s", name, seed_dir, dest_dir)
        self.execute(sql, operation, pdb_name=name, log_sql=mask(sql, admin_password))
        return dest_dir

    # -- workflows -----------------------------------------------------------

    def provision_pdb(self, admin_user, admin_password, name=None):
        """Create a PDB from the seed, open it READ WRITE and save its state.

        Returns ``(name, destination directory)``. A timestamp name is
        generated when ``name`` is not given.
        """
        self.ensure_root()
        self.verify_seed_directory()

        if name is None:
            name = generate_pdb_name()
        dest_dir = self._create_from_seed(name, admin_user, admin_password)

        pdb = self.pdb(name)
        try:
            pdb.open_read_write()
            try:
                LOG.info("PDB %s open mode: %s", name, pdb.open_mode())
            except LifecycleError as exc:
                LOG.warning("Could not read open mode of %s: %s", name, exc)

            pdb.save_state()
            try:
                saved = pdb.saved_state()
            except LifecycleError as exc:
                LOG.warning("Could not read DBA_PDB_SAVED_STATES for %s: %s", name, exc)
            else:
                if saved is None:
                    LOG.info("No saved state record found for %s", name)
                else:
                    LOG.info("Saved state recorded for %s: STATE=%s, RESTRICTED=%s",
                             name, saved.state, saved.restricted)
        finally:
            pdb.close()
        return name, dest_dir

    def teardown_pdb(self, name, instances_all=None, kill_sessions=False):
        """Close, discard state and drop ``name`` including its datafiles.

        With ``kill_sessions`` USER sessions are evicted before closing. Without
        it, a failed close triggers one best-effort eviction and one more close.
        """
        self.ensure_root()
        pdb = self.pdb(name)
        try:
            if kill_sessions:
                pdb.kill_user_sessions_until_gone()

            try:
                pdb.close_immediate(instances_all)
            except LifecycleError as exc:
                LOG.warning("Close of %s failed, retrying once: %s", name, exc)
                if not kill_sessions:
                    try:
                        pdb.kill_user_sessions_until_gone()
                    except LifecycleError as kill_exc:
                        LOG.warning("Session eviction in %s did not complete: %s", name, kill_exc)
                pdb.close_immediate(instances_all)

            try:
                pdb.discard_state()
            except LifecycleError as exc:
                LOG.warning("DISCARD STATE for %s failed (continuing): %s", name, exc)
            else:
                self._log_saved_state_after_discard(pdb)

            pdb.drop_including_datafiles()
        finally:
            pdb.close()
        self.verify_dropped(name)
        LOG.info("PDB %s dropped", name)

    def _log_saved_state_after_discard(self, pdb):
        try:
            saved = pdb.saved_state()
        except LifecycleError as exc:
            LOG.warning("Could not read DBA_PDB_SAVED_STATES for %s: %s", pdb.name, exc)
            return
        if saved is None:
            LOG.info("Saved state for %s is absent after DISCARD STATE", pdb.name)
        else:
            LOG.warning("Saved state still present after DISCARD STATE for %s: STATE=%s, RESTRICTED=%s",
                        pdb.name, saved.state, saved.restricted)

    def close(self):
        """Closes the cursor, and the connection when this CDB opened it."""
        self._cursor.close()
        if self._owns_connection:
            self.connection.close()
            LOG.info("CDB connection closed")
