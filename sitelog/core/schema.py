"""SQLite schema management (code-first approach)."""

import logging

import aiosqlite


logger = logging.getLogger(__name__)


# Central list of all collections in the schema
COLLECTIONS = [
    "users",
    "projects",
    "work_logs",
    "notifications",
]

# Columns holding JSON documents, decoded by db_client on read
JSON_COLUMNS: dict[str, frozenset[str]] = {
    "work_logs": frozenset({"employee_ids", "materials_used", "photos", "documents"}),
}


def _get_collection_schema(*, collection_name: str) -> str:
    """Get the CREATE TABLE/INDEX statements for a collection."""
    schemas = {
        "users": """
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                full_name TEXT NOT NULL,
                email TEXT NOT NULL,
                role TEXT NOT NULL CHECK (role IN ('Team Leader', 'Manager')),
                created TEXT NOT NULL,
                updated TEXT NOT NULL
            );
            CREATE UNIQUE INDEX IF NOT EXISTS idx_users_email ON users (email);
            CREATE INDEX IF NOT EXISTS idx_users_role ON users (role);
        """,
        "projects": """
            CREATE TABLE IF NOT EXISTS projects (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                address TEXT,
                created TEXT NOT NULL,
                updated TEXT NOT NULL
            );
        """,
        "work_logs": """
            CREATE TABLE IF NOT EXISTS work_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                date TEXT NOT NULL,
                project_id TEXT NOT NULL,
                team_leader_id TEXT NOT NULL,
                start_time TEXT NOT NULL,
                end_time TEXT NOT NULL,
                weather TEXT,
                work_description TEXT NOT NULL,
                issues_encountered TEXT,
                next_steps TEXT,
                employee_ids TEXT NOT NULL DEFAULT '[]',
                materials_used TEXT NOT NULL DEFAULT '[]',
                photos TEXT NOT NULL DEFAULT '[]',
                documents TEXT NOT NULL DEFAULT '[]',
                status TEXT NOT NULL DEFAULT 'draft' CHECK (status IN ('draft', 'submitted', 'approved')),
                created TEXT NOT NULL,
                updated TEXT NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_work_logs_owner ON work_logs (team_leader_id);
            CREATE INDEX IF NOT EXISTS idx_work_logs_date ON work_logs (date);
            CREATE INDEX IF NOT EXISTS idx_work_logs_status ON work_logs (status);
        """,
        "notifications": """
            CREATE TABLE IF NOT EXISTS notifications (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                recipient_id TEXT NOT NULL,
                message TEXT NOT NULL,
                log_id TEXT NOT NULL,
                event TEXT NOT NULL CHECK (event IN ('submitted', 'approved')),
                is_read INTEGER NOT NULL DEFAULT 0,
                created TEXT NOT NULL,
                updated TEXT NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_notifications_recipient ON notifications (recipient_id, is_read);
        """,
    }
    return schemas[collection_name]


async def init_db(*, conn: aiosqlite.Connection) -> None:
    """Create every collection table and index (idempotent)."""
    for collection_name in COLLECTIONS:
        await conn.executescript(_get_collection_schema(collection_name=collection_name))
        logger.info("Ensured collection: %s", collection_name)

    logger.info("SQLite schema sync complete")
