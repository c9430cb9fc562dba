import sqlite3
from typing import Dict, Iterable, List

import psycopg2
import psycopg2.extras
from flask import current_app, g

from inventarios.config import backend_kind


class Database:
    def __init__(self, backend: str, connection):
        self.backend = backend
        self._conn = connection

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

    def commit(self):
        self._conn.commit()

    def rollback(self):
        self._conn.rollback()

    def close(self):
        self._conn.close()


def _convert_qmark_to_pg(sql: str) -> str:
    return sql.replace("?", "%s")


def connect_database(db_path: str) -> Database:
    if backend_kind(db_path) == "postgres":
        conn = psycopg2.connect(db_path)
        return Database("postgres", conn)

    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return Database("sqlite", conn)


def get_db() -> Database:
    if "db" not in g:
        g.db = connect_database(current_app.config["BACKEND_URL"])
    return g.db


def close_db(_error=None):
    db = g.pop("db", None)
    if db is not None:
        db.close()


# Columns stored as JSON text on SQL backends.
JSON_COLUMNS: Dict[str, frozenset] = {
    "providers": frozenset({"phones", "product_type_ids"}),
}

BOOLEAN_COLUMNS: Dict[str, frozenset] = {
    "products": frozenset({"requires_expiry_control"}),
    "purchase_orders": frozenset({"email_sent", "whatsapp_sent"}),
}


_COLUMN_TYPES: Dict[str, Dict[str, str]] = {
    "sqlite": {
        "pk": "INTEGER PRIMARY KEY AUTOINCREMENT",
        "money": "REAL",
        "bool": "INTEGER",
        "ts": "TEXT",
    },
    "postgres": {
        "pk": "SERIAL PRIMARY KEY",
        "money": "NUMERIC(16, 2)",
        "bool": "BOOLEAN",
        "ts": "TIMESTAMP",
    },
}

_SCHEMA_STATEMENTS: List[str] = [
    """
    CREATE TABLE IF NOT EXISTS product_types (
        id {pk},
        name TEXT NOT NULL,
        description TEXT,
        created_at {ts} NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at {ts} NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS providers (
        id {pk},
        business_name TEXT NOT NULL,
        ruc TEXT,
        type TEXT NOT NULL DEFAULT 'recurrent' CHECK (type IN ('contract','recurrent')),
        contact_person TEXT,
        phone TEXT,
        phones TEXT NOT NULL DEFAULT '[]',
        email TEXT,
        address TEXT,
        payment_terms INTEGER NOT NULL DEFAULT 30,
        product_type_ids TEXT NOT NULL DEFAULT '[]',
        contract_number TEXT,
        contract_start_date TEXT,
        delivery_frequency TEXT CHECK (
            delivery_frequency IS NULL OR delivery_frequency IN ('weekly','biweekly','monthly')
        ),
        contract_file_url TEXT,
        status TEXT NOT NULL DEFAULT 'active' CHECK (status IN ('active','inactive')),
        created_at {ts} NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at {ts} NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS products (
        id {pk},
        code TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL,
        description TEXT,
        unit TEXT NOT NULL,
        product_type_id INTEGER REFERENCES product_types (id) ON DELETE SET NULL,
        storage_type TEXT NOT NULL DEFAULT 'bulk' CHECK (storage_type IN ('bulk','batch')),
        requires_expiry_control {bool} NOT NULL DEFAULT {false},
        min_stock {money} NOT NULL DEFAULT 0,
        status TEXT NOT NULL DEFAULT 'active' CHECK (status IN ('active','inactive')),
        created_at {ts} NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at {ts} NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS warehouses (
        id {pk},
        name TEXT NOT NULL,
        location TEXT,
        capacity {money},
        status TEXT NOT NULL DEFAULT 'active' CHECK (status IN ('active','inactive')),
        created_at {ts} NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at {ts} NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS purchase_orders (
        id {pk},
        order_number TEXT NOT NULL UNIQUE,
        provider_id INTEGER NOT NULL REFERENCES providers (id),
        order_date TEXT NOT NULL,
        delivery_date TEXT,
        payment_due_date TEXT,
        status TEXT NOT NULL DEFAULT 'pre_order' CHECK (
            status IN ('pre_order','issued','received','paid')
        ),
        payment_status TEXT NOT NULL DEFAULT 'unpaid' CHECK (payment_status IN ('unpaid','paid')),
        subtotal {money} NOT NULL DEFAULT 0,
        tax_amount {money} NOT NULL DEFAULT 0,
        total_amount {money} NOT NULL DEFAULT 0,
        notes TEXT,
        email_sent {bool} NOT NULL DEFAULT {false},
        whatsapp_sent {bool} NOT NULL DEFAULT {false},
        created_at {ts} NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at {ts} NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS purchase_order_items (
        id {pk},
        purchase_order_id INTEGER NOT NULL REFERENCES purchase_orders (id) ON DELETE CASCADE,
        product_id INTEGER NOT NULL REFERENCES products (id),
        quantity {money} NOT NULL,
        unit_price {money} NOT NULL,
        total_price {money} NOT NULL,
        received_quantity {money} NOT NULL DEFAULT 0,
        created_at {ts} NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at {ts} NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS payments (
        id {pk},
        purchase_order_id INTEGER NOT NULL REFERENCES purchase_orders (id) ON DELETE CASCADE,
        amount {money} NOT NULL CHECK (amount > 0),
        payment_date TEXT NOT NULL,
        payment_type TEXT NOT NULL CHECK (payment_type IN ('cash','transfer','check','card')),
        reference TEXT,
        description TEXT,
        receipt_file TEXT,
        created_at {ts} NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at {ts} NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS notifications (
        id {pk},
        type TEXT NOT NULL CHECK (type IN ('low_stock','expiry','payment_due','import','manual')),
        title TEXT NOT NULL,
        message TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'unread' CHECK (status IN ('unread','read','archived')),
        priority TEXT NOT NULL DEFAULT 'medium' CHECK (priority IN ('low','medium','high')),
        related_entity_type TEXT,
        related_entity_id TEXT,
        read_at {ts},
        created_at {ts} NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at {ts} NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_payments_order ON payments (purchase_order_id)",
    "CREATE INDEX IF NOT EXISTS idx_order_items_order ON purchase_order_items (purchase_order_id)",
    "CREATE INDEX IF NOT EXISTS idx_notifications_status ON notifications (status, created_at)",
]


def schema_statements(backend: str) -> List[str]:
    types = dict(_COLUMN_TYPES["postgres" if backend == "postgres" else "sqlite"])
    types["false"] = "FALSE" if backend == "postgres" else "0"
    return [statement.format(**types).strip() for statement in _SCHEMA_STATEMENTS]


def init_schema(db: Database) -> None:
    for statement in schema_statements(db.backend):
        db.execute(statement)
    db.commit()


def init_db():
    init_schema(get_db())
