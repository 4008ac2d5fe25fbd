r"""
Detect database unique-constraint violations.

Only errors raised while SQLAlchemy executed a statement (`sqlalchemy.exc.DBAPIError` and
its subclasses such as `IntegrityError`) are considered. Anything else returns False no
matter what its message says: a validation error like

    Cannot publish workflow: references workflow "Duplicate Detection"

mentions "duplicate" but did not come from the database.

For DBAPIError the wrapped driver exception (`exc.orig`) is inspected:

| Backend          | Structured signal                                        |
| ---------------- | -------------------------------------------------------- |
| SQLite           | SQLITE_CONSTRAINT / SQLITE_CONSTRAINT_UNIQUE             |
| PostgreSQL       | SQLSTATE 23505 (unique_violation)                        |
| MySQL / MariaDB  | ER_DUP_ENTRY, errno 1062                                 |

Drivers expose those codes under different attribute names (psycopg2 `pgcode`,
psycopg 3 and asyncpg `sqlstate`, sqlite3 `sqlite_errorname`, mysql-connector `errno`,
PyMySQL / MySQLdb `args[0]`). When no structured code matches, the lower-cased driver
message is searched for phrases that databases generate themselves.
"""
import logging
from enum import Enum
from typing import Any

from sqlalchemy.exc import DBAPIError

logger = logging.getLogger(__name__)


class SqliteErrorCodes(str, Enum):
    CONSTRAINT = "SQLITE_CONSTRAINT"
    CONSTRAINT_UNIQUE = "SQLITE_CONSTRAINT_UNIQUE"


# https://www.postgresql.org/docs/current/errcodes-appendix.html
class PostgresErrorCodes(str, Enum):
    UNIQUE_VIOLATION = "23505"


class MysqlErrorCodes(str, Enum):
    DUP_ENTRY = "ER_DUP_ENTRY"


MYSQL_DUP_ENTRY_ERRNO = 1062

UNIQUE_VIOLATION_CODES = frozenset(
    code.value
    for code in (
        SqliteErrorCodes.CONSTRAINT,
        SqliteErrorCodes.CONSTRAINT_UNIQUE,
        PostgresErrorCodes.UNIQUE_VIOLATION,
        MysqlErrorCodes.DUP_ENTRY,
    )
)

# Phrases produced by the databases themselves, never by user content.
UNIQUE_VIOLATION_PATTERNS = (
    "unique constraint",
    "duplicate key value",
    "duplicate entry",
    "sqlite_constraint_unique",
    "violates unique constraint",
)

_CODE_ATTRS = ("code", "pgcode", "sqlstate", "sqlite_errorname")


def driver_error_codes(orig: Any) -> list[str]:
    """
    Return every string error code the driver exception exposes.
    """
    if orig is None:
        return []
    codes = []
    for attr in _CODE_ATTRS:
        value = getattr(orig, attr, None)
        if isinstance(value, str) and value:
            codes.append(value)
    return codes


def driver_error_number(orig: Any) -> int | None:
    """
    Return the numeric error number of a MySQL-style driver exception, if any.
    """
    if orig is None:
        return None
    errno = getattr(orig, "errno", None)
    if isinstance(errno, int) and not isinstance(errno, bool):
        return errno
    # PyMySQL / MySQLdb: OperationalError(1062, "Duplicate entry ...")
    args = getattr(orig, "args", ())
    if args and isinstance(args[0], int) and not isinstance(args[0], bool):
        return args[0]
    return None


def driver_error_message(exc: DBAPIError) -> str:
    """The human-readable driver message, without SQLAlchemy's statement/parameter suffix."""
    orig = exc.orig
    return str(orig) if orig is not None else str(exc)


def _match_any(msg: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword in msg for keyword in keywords)


def is_unique_constraint_error(error: BaseException) -> bool:
    """
    Return True when `error` is a database unique-constraint violation.

    Pure: the same error always yields the same answer and nothing on it is modified.
    """
    if not isinstance(error, DBAPIError):
        return False

    orig = error.orig
    for code in driver_error_codes(orig):
        if code in UNIQUE_VIOLATION_CODES:
            logger.debug("Unique constraint violation detected", extra={"driver_code": code})
            return True

    if driver_error_number(orig) == MYSQL_DUP_ENTRY_ERRNO:
        logger.debug("Unique constraint violation detected", extra={"driver_errno": MYSQL_DUP_ENTRY_ERRNO})
        return True

    return _match_any(driver_error_message(error).lower(), UNIQUE_VIOLATION_PATTERNS)


__all__ = [
    "UNIQUE_VIOLATION_CODES",
    "UNIQUE_VIOLATION_PATTERNS",
    "driver_error_codes",
    "driver_error_number",
    "driver_error_message",
    "is_unique_constraint_error",
]
