"""SQLite database client wrapper with CRUD operations.

Writes go through a single writer connection per event loop, serialized by an
asyncio lock and wrapped in ``BEGIN IMMEDIATE`` transactions. Reads outside a
transaction use a separate reader connection, so with WAL journaling they only
ever observe committed state.
"""

import asyncio
import json
import logging
import re
import threading
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time
from pathlib import Path
from typing import Any

import aiosqlite

from sitelog.core import schema
from sitelog.core.config import settings
from sitelog.core.errors import NotFoundError, StorageError


logger = logging.getLogger(__name__)


class RecordNotFoundError(NotFoundError):
    """No record with the requested id exists in the collection."""


class DatabaseError(StorageError):
    """SQLite reported a failure."""


class StaleRecordError(Exception):
    """A guarded update or delete found the record no longer matching its expected values."""


_IDENTIFIER_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

_COMPARISON_RE = re.compile(r"""\s*(\w+)\s*(!=|>=|<=|=|>|<|~)\s*("(?:[^"\\]|\\.)*")\s*""")

# References to other records are stored as TEXT and compared verbatim
_REFERENCE_FIELDS = frozenset({"project_id", "team_leader_id", "recipient_id", "log_id"})

_SQL_OPERATORS = {
    "=": "=",
    "!=": "!=",
    ">": ">",
    "<": "<",
    ">=": ">=",
    "<=": "<=",
    "~": "LIKE",
}


def _validate_collection_name(collection: str) -> None:
    """Validate that a collection name contains only alphanumeric characters and underscores."""
    if not _IDENTIFIER_RE.match(collection):
        msg = f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def sanitize_param(value: str | int | float | bool | None) -> str:
    """Escape a value for safe embedding in filter queries via json.dumps."""
    return json.dumps(str(value))[1:-1]


def _utc_now() -> str:
    """Current UTC timestamp in a fixed-width, lexically sortable ISO format."""
    return datetime.now(UTC).isoformat(timespec="microseconds").replace("+00:00", "Z")


def _convert_record_ids(record: dict[str, Any]) -> dict[str, Any]:
    """Convert integer ID and foreign key fields to strings for Pydantic compatibility."""
    converted = record.copy()
    for key, value in converted.items():
        if isinstance(value, int) and (key == "id" or key in _REFERENCE_FIELDS):
            converted[key] = str(value)
    return converted


def _decode_json_columns(collection: str, record: dict[str, Any]) -> dict[str, Any]:
    """Decode JSON document columns back into Python lists and dicts."""
    for column in schema.JSON_COLUMNS.get(collection, ()):
        value = record.get(column)
        if isinstance(value, str):
            record[column] = json.loads(value)
    return record


def _row_to_record(collection: str, cursor: aiosqlite.Cursor, row: Any) -> dict[str, Any]:
    columns = [description[0] for description in cursor.description]
    record = dict(zip(columns, row, strict=True))
    return _convert_record_ids(_decode_json_columns(collection, record))


def _serialize_value(value: Any) -> Any:
    """Convert a Python value into something SQLite can store."""
    if isinstance(value, datetime | date | time):
        return value.isoformat()
    if isinstance(value, dict | list):
        return json.dumps(value)
    return value


def _coerce_id(collection: str, record_id: str) -> int:
    try:
        return int(record_id)
    except (TypeError, ValueError) as e:
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg) from e


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


def _parse_value(value: str, *, is_like: bool = False) -> str | int | float | bool | None:
    """Parse a string value to the appropriate Python type for SQLite."""
    if is_like:
        escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        return f"%{escaped}%"

    if value.isdigit():
        return int(value)
    if value.replace(".", "", 1).isdigit():
        return float(value)

    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False

    return value


def _build_condition(match: re.Match[str]) -> tuple[str, str | int | float | bool | None]:
    """Turn one matched comparison into a SQL condition and its parameter."""
    field_name = match.group(1)
    sql_op = _SQL_OPERATORS[match.group(2)]
    raw_value = json.loads(match.group(3))

    if sql_op == "LIKE":
        # SQLite LIKE only folds ASCII; casefold both sides for Unicode text
        return f"casefold({field_name}) LIKE ? ESCAPE '\\'", _parse_value(raw_value.casefold(), is_like=True)
    if field_name in _REFERENCE_FIELDS:
        return f"{field_name} {sql_op} ?", raw_value
    return f"{field_name} {sql_op} ?", _parse_value(raw_value)


def parse_filter(filter_query: str) -> tuple[str, list[str | int | float | bool | None]]:
    """Parse filter syntax into a SQL WHERE clause and parameter list.

    The syntax is a sequence of ``field <op> "value"`` comparisons joined by
    ``&&``. Values are JSON string literals, so anything escaped with
    :func:`sanitize_param` (including quotes and ``&&``) round-trips safely.
    ``~`` is a case-insensitive substring match.
    """
    if not filter_query.strip():
        return "", []

    conditions = []
    params: list[str | int | float | bool | None] = []
    pos = 0

    while True:
        match = _COMPARISON_RE.match(filter_query, pos)
        if not match:
            msg = f"Invalid filter syntax: {filter_query}"
            raise ValueError(msg)

        condition, value = _build_condition(match)
        conditions.append(condition)
        params.append(value)

        pos = match.end()
        if pos == len(filter_query):
            break
        if not filter_query.startswith("&&", pos):
            msg = f"Invalid filter syntax: {filter_query}"
            raise ValueError(msg)
        pos += 2

    return " AND ".join(conditions), params


def parse_sort(sort: str) -> str:
    """Translate ``-field,other`` sort syntax into a SQL ORDER BY list."""
    default = "id ASC"
    if not sort.strip():
        return default

    terms = []
    for raw_term in sort.split(","):
        term = raw_term.strip()
        descending = term.startswith("-")
        column = term[1:] if descending else term
        if not _IDENTIFIER_RE.match(column):
            logger.warning("Invalid sort parameter, using default", extra={"sort": sort})
            return default
        terms.append(f"{column} {'DESC' if descending else 'ASC'}")

    return ", ".join(terms)


@dataclass
class _LoopConnections:
    """Writer/reader connection pair bound to one event loop."""

    loop: asyncio.AbstractEventLoop
    path: Path
    writer: aiosqlite.Connection | None = None
    reader: aiosqlite.Connection | None = None
    connect_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    write_lock: asyncio.Lock = field(default_factory=asyncio.Lock)


_db_connections: dict[tuple[int, str], _LoopConnections] = {}
_active_transaction: ContextVar[aiosqlite.Connection | None] = ContextVar("_active_transaction", default=None)


def _casefold(value: Any) -> Any:
    return value.casefold() if isinstance(value, str) else value


async def _connect(path: Path) -> aiosqlite.Connection:
    conn = await aiosqlite.connect(str(path), isolation_level=None)
    await conn.execute("PRAGMA foreign_keys = ON")
    await conn.execute("PRAGMA journal_mode = WAL")
    await conn.execute("PRAGMA busy_timeout = 5000")
    await conn.create_function("casefold", 1, _casefold, deterministic=True)
    return conn


async def _get_connections(*, db_path: str | None = None) -> _LoopConnections:
    """Get or create the connection pair for the current thread, loop, and db path."""
    loop = asyncio.get_running_loop()
    path = get_db_path(db_path)
    cache_key = (threading.get_ident(), str(path))

    state = _db_connections.get(cache_key)
    if state is None or state.loop is not loop:
        if state is not None:
            logger.warning("Discarding SQLite connections bound to a previous event loop", extra={"db_path": str(path)})
        state = _LoopConnections(loop=loop, path=path)
        _db_connections[cache_key] = state

    async with state.connect_lock:
        if state.writer is None or state.reader is None:
            path.parent.mkdir(parents=True, exist_ok=True)
            try:
                writer = await _connect(path)
                reader = await _connect(path)
            except aiosqlite.Error as e:
                msg = f"Failed to open SQLite database {path}: {e}"
                raise DatabaseError(msg) from e

            state.writer, state.reader = writer, reader
            logger.info(
                "Created new SQLite connections",
                extra={"db_path": str(path), "thread_id": cache_key[0], "loop_id": id(loop)},
            )

    return state


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Return the connection reads should use.

    Inside :func:`transaction` this is the transaction's own connection, so a
    transaction sees its uncommitted writes. Otherwise it is the reader connection.
    """
    active = _active_transaction.get()
    if active is not None:
        return active

    state = await _get_connections(db_path=db_path)
    assert state.reader is not None
    return state.reader


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connections for the current thread and db path."""
    path = get_db_path(db_path)
    cache_key = (threading.get_ident(), str(path))

    state = _db_connections.pop(cache_key, None)
    if state is None:
        return

    for conn in (state.writer, state.reader):
        if conn is None:
            continue
        try:
            await conn.close()
        except aiosqlite.Error as e:
            logger.warning("Error closing SQLite connection", extra={"error": str(e), "db_path": str(path)})

    logger.info("Closed SQLite connections", extra={"db_path": str(path)})


async def init_db(*, db_path: str | None = None) -> None:
    """Initialize the database schema."""
    state = await _get_connections(db_path=db_path)
    async with state.write_lock:
        assert state.writer is not None
        try:
            await schema.init_db(conn=state.writer)
        except aiosqlite.Error as e:
            msg = f"Failed to initialize schema: {e}"
            raise DatabaseError(msg) from e


@asynccontextmanager
async def transaction(*, db_path: str | None = None) -> AsyncIterator[aiosqlite.Connection]:
    """Run the enclosed reads and writes as one atomic unit.

    Nested calls join the outermost transaction. Any exception rolls back every
    write made inside the block.
    """
    active = _active_transaction.get()
    if active is not None:
        yield active
        return

    state = await _get_connections(db_path=db_path)
    async with state.write_lock:
        conn = state.writer
        assert conn is not None
        token = _active_transaction.set(conn)
        try:
            try:
                await conn.execute("BEGIN IMMEDIATE")
            except aiosqlite.Error as e:
                msg = f"Failed to begin transaction: {e}"
                raise DatabaseError(msg) from e

            try:
                yield conn
            except BaseException:
                await _rollback(conn)
                raise

            try:
                await conn.execute("COMMIT")
            except aiosqlite.Error as e:
                await _rollback(conn)
                msg = f"Failed to commit transaction: {e}"
                raise DatabaseError(msg) from e
        finally:
            _active_transaction.reset(token)


async def _rollback(conn: aiosqlite.Connection) -> None:
    try:
        await conn.execute("ROLLBACK")
    except aiosqlite.Error as e:
        logger.warning("Rollback failed", extra={"error": str(e)})


def _table_error(collection: str, e: aiosqlite.Error, action: str) -> DatabaseError:
    if isinstance(e, aiosqlite.OperationalError) and "no such table" in str(e):
        logger.error("Table not found", extra={"collection": collection})
        return DatabaseError(f"Table '{collection}' does not exist. Call init_db() first.")
    logger.error(f"{action}_failed", extra={"collection": collection, "error": str(e)})
    return DatabaseError(f"Failed to {action.replace('_', ' ')} in {collection}: {e}")


async def create_record(*, collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a new record and return it with its assigned id and timestamps."""
    _validate_collection_name(collection)

    now = _utc_now()
    payload = {**data, "created": now, "updated": now}
    columns = list(payload.keys())
    for column in columns:
        _validate_collection_name(column)

    columns_str = ", ".join(columns)
    placeholders_str = ", ".join("?" for _ in columns)
    values = [_serialize_value(payload[key]) for key in columns]

    query = f"INSERT INTO {collection} ({columns_str}) VALUES ({placeholders_str})"  # noqa: S608 - names are validated
    try:
        async with transaction() as conn:
            cursor = await conn.execute(query, values)
            record_id = cursor.lastrowid
            result = await get_record(collection=collection, record_id=str(record_id))
    except aiosqlite.Error as e:
        raise _table_error(collection, e, "create_record") from e

    logger.info("Created record", extra={"collection": collection, "record_id": record_id})
    return result


async def get_record(*, collection: str, record_id: str) -> dict[str, Any]:
    """Fetch a single record by ID, raising RecordNotFoundError if not found."""
    _validate_collection_name(collection)
    numeric_id = _coerce_id(collection, record_id)

    try:
        conn = await get_connection()
        query = f"SELECT * FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, (numeric_id,))
        row = await cursor.fetchone()
    except aiosqlite.Error as e:
        raise _table_error(collection, e, "get_record") from e

    if row is None:
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)

    logger.debug("Retrieved record", extra={"collection": collection, "record_id": record_id})
    return _row_to_record(collection, cursor, row)


def _guard_clause(expected: dict[str, Any] | None) -> tuple[str, list[Any]]:
    if not expected:
        return "", []
    for key in expected:
        _validate_collection_name(key)
    clause = "".join(f" AND {key} = ?" for key in expected)
    return clause, [_serialize_value(value) for value in expected.values()]


async def update_record(
    *,
    collection: str,
    record_id: str,
    data: dict[str, Any],
    expected: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Update a record by ID and return the updated record.

    When ``expected`` is given the update only applies if every listed column
    still holds the expected value (compare-and-swap); otherwise
    StaleRecordError is raised and nothing is written. ``updated`` never moves
    backwards.
    """
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)

    _validate_collection_name(collection)
    numeric_id = _coerce_id(collection, record_id)
    for key in data:
        _validate_collection_name(key)

    set_clause = ", ".join(f"{key} = ?" for key in data)
    values = [_serialize_value(val) for val in data.values()]
    guard_clause, guard_values = _guard_clause(expected)

    query = (
        f"UPDATE {collection} SET {set_clause}, updated = MAX(updated, ?) WHERE id = ?{guard_clause}"  # noqa: S608 - names are validated
    )
    params = [*values, _utc_now(), numeric_id, *guard_values]

    try:
        async with transaction() as conn:
            cursor = await conn.execute(query, params)
            if cursor.rowcount == 0:
                # Raises RecordNotFoundError when the record is gone
                current = await get_record(collection=collection, record_id=record_id)
                msg = f"Record {record_id} in {collection} changed concurrently (expected {expected}, found {current})"
                raise StaleRecordError(msg)
            result = await get_record(collection=collection, record_id=record_id)
    except aiosqlite.Error as e:
        raise _table_error(collection, e, "update_record") from e

    logger.info("Updated record", extra={"collection": collection, "record_id": record_id})
    return result


async def update_records(*, collection: str, filter_query: str, data: dict[str, Any]) -> int:
    """Apply the same update to every record matching the filter and return the count."""
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)

    _validate_collection_name(collection)
    for key in data:
        _validate_collection_name(key)

    where_clause, where_params = parse_filter(filter_query)
    set_clause = ", ".join(f"{key} = ?" for key in data)
    values = [_serialize_value(val) for val in data.values()]

    query = f"UPDATE {collection} SET {set_clause}, updated = MAX(updated, ?)"  # noqa: S608 - names are validated
    if where_clause:
        query += f" WHERE {where_clause}"
    params = [*values, _utc_now(), *where_params]

    try:
        async with transaction() as conn:
            cursor = await conn.execute(query, params)
            count = cursor.rowcount
    except aiosqlite.Error as e:
        raise _table_error(collection, e, "update_records") from e

    logger.info("Updated records", extra={"collection": collection, "count": count})
    return count


async def delete_record(*, collection: str, record_id: str, expected: dict[str, Any] | None = None) -> None:
    """Delete a record by ID, raising RecordNotFoundError if not found.

    ``expected`` guards the delete the same way it guards :func:`update_record`.
    """
    _validate_collection_name(collection)
    numeric_id = _coerce_id(collection, record_id)
    guard_clause, guard_values = _guard_clause(expected)

    query = f"DELETE FROM {collection} WHERE id = ?{guard_clause}"  # noqa: S608 - collection is validated
    try:
        async with transaction() as conn:
            cursor = await conn.execute(query, [numeric_id, *guard_values])
            if cursor.rowcount == 0:
                current = await get_record(collection=collection, record_id=record_id)
                msg = f"Record {record_id} in {collection} changed concurrently (expected {expected}, found {current})"
                raise StaleRecordError(msg)
    except aiosqlite.Error as e:
        raise _table_error(collection, e, "delete_record") from e

    logger.info("Deleted record", extra={"collection": collection, "record_id": record_id})


async def _select(
    *,
    collection: str,
    filter_query: str,
    sort: str,
    limit: int | None = None,
    offset: int = 0,
) -> list[dict[str, Any]]:
    _validate_collection_name(collection)
    where_clause, params = parse_filter(filter_query)

    query = f"SELECT * FROM {collection}"  # noqa: S608 - collection is validated
    if where_clause:
        query += f" WHERE {where_clause}"
    query += f" ORDER BY {parse_sort(sort)}"
    if limit is not None:
        query += " LIMIT ? OFFSET ?"
        params.extend([limit, offset])

    try:
        conn = await get_connection()
        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()
    except aiosqlite.Error as e:
        raise _table_error(collection, e, "list_records") from e

    return [_row_to_record(collection, cursor, row) for row in rows]


async def list_records(
    *,
    collection: str,
    page: int = 1,
    per_page: int = 50,
    filter_query: str = "",
    sort: str = "",
) -> list[dict[str, Any]]:
    """List records with optional filtering, sorting, and pagination."""
    records = await _select(
        collection=collection,
        filter_query=filter_query,
        sort=sort,
        limit=per_page,
        offset=(page - 1) * per_page,
    )
    logger.debug("Listed records", extra={"collection": collection, "count": len(records)})
    return records


async def list_all_records(*, collection: str, filter_query: str = "", sort: str = "") -> list[dict[str, Any]]:
    """List every matching record from a single query (one consistent snapshot)."""
    records = await _select(collection=collection, filter_query=filter_query, sort=sort)
    logger.debug("Listed all records", extra={"collection": collection, "count": len(records)})
    return records


async def get_first_record(*, collection: str, filter_query: str, sort: str = "") -> dict[str, Any] | None:
    """Return the first record matching the filter, or None."""
    records = await _select(collection=collection, filter_query=filter_query, sort=sort, limit=1)
    return records[0] if records else None


async def count_records(*, collection: str, filter_query: str = "") -> int:
    """Count records matching the filter."""
    _validate_collection_name(collection)
    where_clause, params = parse_filter(filter_query)

    query = f"SELECT COUNT(*) FROM {collection}"  # noqa: S608 - collection is validated
    if where_clause:
        query += f" WHERE {where_clause}"

    try:
        conn = await get_connection()
        cursor = await conn.execute(query, params)
        row = await cursor.fetchone()
    except aiosqlite.Error as e:
        raise _table_error(collection, e, "count_records") from e

    return int(row[0]) if row else 0
