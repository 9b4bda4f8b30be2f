"""Statement execution with lifecycle error wrapping."""
import logging

import oracledb

from .exceptions import StatementFailedError

LOG = logging.getLogger(__name__)


def execute(cursor, sql, operation, pdb_name=None, params=None, log_sql=None):
    """Run ``sql`` on ``cursor``; engine errors become ``StatementFailedError``.

    ``log_sql`` is what gets logged instead of ``sql`` when the text carries a
    secret.
    """
    LOG.debug("Executing: %s", log_sql if log_sql is not None else sql)
    try:
        if params:
            cursor.execute(sql, params)
        else:
            cursor.execute(sql)
    except oracledb.DatabaseError as exc:
        raise StatementFailedError("statement rejected", operation=operation,
                                   pdb_name=pdb_name, cause=exc) from exc
    return cursor
