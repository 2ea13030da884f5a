import contextlib
import sqlite3
from decimal import Decimal
from typing import Dict, Iterable

try:
    import psycopg2
    import psycopg2.extras
except ImportError:  # pragma: no cover - optional dependency for postgres
    psycopg2 = None

from flask import current_app, g


sqlite3.register_adapter(Decimal, str)


class Database:
    def __init__(self, backend: str, connection):
        self.backend = backend
        self._conn = connection
        self._depth = 0

    def execute(self, sql: str, params: Iterable | None = None):
        if self.backend == "postgres":
            cursor = self._conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
            if params:
                sql = _convert_qmark_to_pg(sql)
                cursor.execute(sql, list(params))
            else:
                cursor.execute(sql)
            return cursor
        return self._conn.execute(sql, params or ())

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextlib.contextmanager
    def transaction(self):
        """BEGIN ... COMMIT, or ROLLBACK when the block raises.

        Nested blocks join the outermost transaction.
        """
        if self._depth:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        self.execute("BEGIN")
        self._depth = 1
        try:
            yield self
        except BaseException:
            self._depth = 0
            self._rollback()
            raise
        self._depth = 0
        self.execute("COMMIT")

    def _rollback(self) -> None:
        if self.backend == "sqlite" and not self._conn.in_transaction:
            return
        self.execute("ROLLBACK")

    def commit(self):
        self._conn.commit()

    def close(self):
        self._conn.close()


def _convert_qmark_to_pg(sql: str) -> str:
    return sql.replace("?", "%s")


def _connect_database(db_path: str) -> Database:
    if db_path.lower().startswith("postgres"):
        if psycopg2 is None:
            raise RuntimeError("psycopg2 nao instalado.")
        conn = psycopg2.connect(db_path)
        conn.autocommit = True
        return Database("postgres", conn)

    # Autocommit mode; multi-statement writes open BEGIN explicitly.
    conn = sqlite3.connect(db_path, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return Database("sqlite", conn)


def get_db():
    if "db" not in g:
        db_path = current_app.config["DB_PATH"]
        g.db = _connect_database(db_path)
    return g.db


def close_db(_error=None):
    db = g.pop("db", None)
    if db is not None:
        db.close()


def init_db():
    db = get_db()
    if db.backend == "postgres":
        _init_db_postgres(db)
        return

    _init_db_sqlite(db)


SCHEMA_TABLES = (
    "document_tags",
    "tags",
    "documents",
    "tender_assigned_users",
    "tenders",
    "users",
    "organizations",
)


_SQLITE_TYPES: Dict[str, str] = {
    "date": "TEXT",
    "timestamp": "TEXT",
    "money": "NUMERIC",
    "now": "CURRENT_TIMESTAMP",
}

_POSTGRES_TYPES: Dict[str, str] = {
    "date": "DATE",
    "timestamp": "TIMESTAMPTZ",
    "money": "NUMERIC(15, 2)",
    "now": "CURRENT_TIMESTAMP",
}


def _init_db_sqlite(db: Database):
    _create_tables(db, _SQLITE_TYPES)
    db.commit()


def _init_db_postgres(db: Database) -> None:
    _create_tables(db, _POSTGRES_TYPES)
    db.commit()


def _create_tables(db, types: Dict[str, str]) -> None:
    db.execute(
        """
        CREATE TABLE IF NOT EXISTS organizations (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            created_at {timestamp} NOT NULL DEFAULT {now}
        )
        """.format(**types)
    )

    db.execute(
        """
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            email TEXT UNIQUE,
            created_at {timestamp} NOT NULL DEFAULT {now}
        )
        """.format(**types)
    )

    db.execute(
        """
        CREATE TABLE IF NOT EXISTS tenders (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'analise_interna',
            modality TEXT,
            process_number TEXT,
            object TEXT,
            notice TEXT,
            notice_number TEXT,
            opening_date {date},
            proposal_deadline {date},
            judgment_date {date},
            organization_id TEXT REFERENCES organizations (id),
            estimated_value {money},
            responsible_id TEXT REFERENCES users (id),
            deadline_text TEXT,
            tender_url TEXT,
            notice_url TEXT,
            description TEXT,
            payment_terms TEXT,
            financial_notes TEXT,
            kind TEXT,
            billing_type TEXT,
            profit_margin {money},
            contact_name TEXT,
            contact_email TEXT,
            contact_phone TEXT,
            kanban_position INTEGER NOT NULL DEFAULT 0,
            created_at {timestamp} NOT NULL DEFAULT {now},
            updated_at {timestamp} NOT NULL DEFAULT {now}
        )
        """.format(**types)
    )

    db.execute(
        """
        CREATE TABLE IF NOT EXISTS tender_assigned_users (
            tender_id TEXT NOT NULL REFERENCES tenders (id) ON DELETE CASCADE,
            user_id TEXT NOT NULL REFERENCES users (id),
            role TEXT NOT NULL DEFAULT 'Participante',
            assigned_at {timestamp} NOT NULL DEFAULT {now},
            PRIMARY KEY (tender_id, user_id)
        )
        """.format(**types)
    )

    db.execute(
        """
        CREATE TABLE IF NOT EXISTS documents (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            type TEXT NOT NULL,
            storage_path TEXT,
            url TEXT,
            format TEXT,
            size INTEGER NOT NULL DEFAULT 0,
            status TEXT NOT NULL DEFAULT 'ativo',
            valid_until {date},
            description TEXT,
            document_number TEXT,
            created_by TEXT,
            tender_id TEXT REFERENCES tenders (id) ON DELETE CASCADE,
            created_at {timestamp} NOT NULL DEFAULT {now},
            updated_at {timestamp} NOT NULL DEFAULT {now}
        )
        """.format(**types)
    )

    db.execute(
        """
        CREATE TABLE IF NOT EXISTS tags (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL UNIQUE,
            created_at {timestamp} NOT NULL DEFAULT {now},
            updated_at {timestamp} NOT NULL DEFAULT {now}
        )
        """.format(**types)
    )

    db.execute(
        """
        CREATE TABLE IF NOT EXISTS document_tags (
            document_id TEXT NOT NULL REFERENCES documents (id) ON DELETE CASCADE,
            tag_id TEXT NOT NULL REFERENCES tags (id),
            PRIMARY KEY (document_id, tag_id)
        )
        """
    )

    db.execute("CREATE INDEX IF NOT EXISTS idx_tenders_updated_at ON tenders (updated_at)")
    db.execute("CREATE INDEX IF NOT EXISTS idx_tenders_status ON tenders (status)")
    db.execute("CREATE INDEX IF NOT EXISTS idx_documents_tender ON documents (tender_id)")
    db.execute("CREATE INDEX IF NOT EXISTS idx_document_tags_tag ON document_tags (tag_id)")
