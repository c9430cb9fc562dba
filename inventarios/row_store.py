"""Generic row-store client.

Repositories talk to the backend only through :class:`RowStore`: a
select/insert/update/delete interface with filter predicates. Two
implementations exist, one issuing qmark SQL through :class:`Database`
(sqlite or PostgreSQL) and one speaking the PostgREST dialect of the hosted
database-as-a-service over HTTP.
"""

from __future__ import annotations

import contextlib
import json
import re
import sqlite3
import ssl
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, Iterator, List, Sequence

import psycopg2
from flask import current_app, g

from inventarios.config import backend_kind
from inventarios.db import BOOLEAN_COLUMNS, JSON_COLUMNS, Database, get_db


FILTER_OPERATORS = ("eq", "neq", "gt", "gte", "lt", "lte", "in", "ilike", "is")

_SQL_COMPARISONS = {
    "eq": "=",
    "neq": "<>",
    "gt": ">",
    "gte": ">=",
    "lt": "<",
    "lte": "<=",
}

_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")


class RowStoreError(RuntimeError):
    pass


@dataclass(frozen=True)
class Filter:
    column: str
    op: str = "eq"
    value: Any = None

    def __post_init__(self) -> None:
        if self.op not in FILTER_OPERATORS:
            raise ValueError(f"unsupported filter operator: {self.op}")
        _check_identifier(self.column)


def _check_identifier(name: str) -> str:
    if not _IDENTIFIER.match(str(name or "")):
        raise ValueError(f"invalid identifier: {name!r}")
    return name


def _order_terms(order_by: Sequence[str] | None) -> List[tuple[str, bool]]:
    terms: List[tuple[str, bool]] = []
    for raw in order_by or ():
        descending = raw.startswith("-")
        terms.append((_check_identifier(raw.lstrip("-")), descending))
    return terms


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    raise TypeError(f"not JSON serializable: {type(value).__name__}")


class RowStore:
    kind = "abstract"

    def select(
        self,
        table: str,
        *,
        filters: Iterable[Filter] = (),
        any_of: Iterable[Filter] = (),
        order_by: Sequence[str] | None = None,
        limit: int | None = None,
        columns: Sequence[str] | None = None,
    ) -> List[dict]:
        raise NotImplementedError

    def select_one(self, table: str, *, filters: Iterable[Filter] = ()) -> dict | None:
        rows = self.select(table, filters=filters, limit=1)
        return rows[0] if rows else None

    def insert(self, table: str, values: Dict[str, Any]) -> dict:
        raise NotImplementedError

    def update(self, table: str, values: Dict[str, Any], *, filters: Iterable[Filter]) -> List[dict]:
        raise NotImplementedError

    def delete(self, table: str, *, filters: Iterable[Filter]) -> int:
        raise NotImplementedError

    @contextlib.contextmanager
    def unit_of_work(self) -> Iterator["RowStore"]:
        yield self


class SqlRowStore(RowStore):
    def __init__(
        self,
        db: Database,
        *,
        json_columns: Dict[str, frozenset] | None = None,
        boolean_columns: Dict[str, frozenset] | None = None,
    ) -> None:
        self.db = db
        self.kind = db.backend
        self._json_columns = JSON_COLUMNS if json_columns is None else json_columns
        self._boolean_columns = BOOLEAN_COLUMNS if boolean_columns is None else boolean_columns
        self._in_unit_of_work = False

    @contextlib.contextmanager
    def unit_of_work(self) -> Iterator["SqlRowStore"]:
        if self._in_unit_of_work:
            yield self
            return
        self._in_unit_of_work = True
        try:
            yield self
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        finally:
            self._in_unit_of_work = False

    def select(
        self,
        table: str,
        *,
        filters: Iterable[Filter] = (),
        any_of: Iterable[Filter] = (),
        order_by: Sequence[str] | None = None,
        limit: int | None = None,
        columns: Sequence[str] | None = None,
    ) -> List[dict]:
        _check_identifier(table)
        column_sql = ", ".join(_check_identifier(c) for c in columns) if columns else "*"
        where_sql, params = self._where(filters, any_of)
        sql = f"SELECT {column_sql} FROM {table}{where_sql}"
        terms = _order_terms(order_by)
        if terms:
            sql += " ORDER BY " + ", ".join(f"{name} {'DESC' if desc else 'ASC'}" for name, desc in terms)
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))
        rows = self._run(sql, params).fetchall()
        return [self._decode(table, row) for row in rows]

    def insert(self, table: str, values: Dict[str, Any]) -> dict:
        _check_identifier(table)
        if not values:
            raise ValueError("insert requires at least one column")
        names = [_check_identifier(name) for name in values]
        placeholders = ", ".join("?" for _ in names)
        params = [self._encode(table, name, values[name]) for name in names]
        sql = f"INSERT INTO {table} ({', '.join(names)}) VALUES ({placeholders}) RETURNING *"
        row = self._write(sql, params, fetch="one")
        return self._decode(table, row)

    def update(self, table: str, values: Dict[str, Any], *, filters: Iterable[Filter]) -> List[dict]:
        _check_identifier(table)
        filters = list(filters)
        if not filters:
            raise ValueError("update requires at least one filter")
        if not values:
            raise ValueError("update requires at least one column")
        assignments: List[str] = []
        params: List[Any] = []
        for name, value in values.items():
            assignments.append(f"{_check_identifier(name)} = ?")
            params.append(self._encode(table, name, value))
        if "updated_at" not in values:
            assignments.append("updated_at = CURRENT_TIMESTAMP")
        where_sql, where_params = self._where(filters, ())
        sql = f"UPDATE {table} SET {', '.join(assignments)}{where_sql} RETURNING *"
        rows = self._write(sql, params + where_params, fetch="all")
        return [self._decode(table, row) for row in rows]

    def delete(self, table: str, *, filters: Iterable[Filter]) -> int:
        _check_identifier(table)
        filters = list(filters)
        if not filters:
            raise ValueError("delete requires at least one filter")
        where_sql, params = self._where(filters, ())
        return int(self._write(f"DELETE FROM {table}{where_sql}", params, fetch="count"))

    def _where(self, filters: Iterable[Filter], any_of: Iterable[Filter]) -> tuple[str, List[Any]]:
        clauses: List[str] = []
        params: List[Any] = []
        for item in filters:
            clause, values = self._compile(item)
            clauses.append(clause)
            params.extend(values)
        alternatives = list(any_of)
        if alternatives:
            compiled = [self._compile(item) for item in alternatives]
            clauses.append("(" + " OR ".join(clause for clause, _ in compiled) + ")")
            for _, values in compiled:
                params.extend(values)
        if not clauses:
            return "", params
        return " WHERE " + " AND ".join(clauses), params

    def _compile(self, item: Filter) -> tuple[str, List[Any]]:
        column = item.column
        if item.op == "is" or (item.op == "eq" and item.value is None):
            if item.value is not None:
                raise ValueError("'is' filters only support None")
            return f"{column} IS NULL", []
        if item.op == "in":
            values = list(item.value or [])
            if not values:
                return "1 = 0", []
            return f"{column} IN ({', '.join('?' for _ in values)})", values
        if item.op == "ilike":
            keyword = "ILIKE" if self.kind == "postgres" else "LIKE"
            return f"{column} {keyword} ?", [item.value]
        return f"{column} {_SQL_COMPARISONS[item.op]} ?", [item.value]

    def _run(self, sql: str, params: List[Any]):
        try:
            return self.db.execute(sql, params)
        except (sqlite3.Error, psycopg2.Error) as exc:
            if self.kind == "postgres" and not self._in_unit_of_work:
                self.db.rollback()
            raise RowStoreError(f"Backend SQL error: {exc}") from exc

    def _write(self, sql: str, params: List[Any], *, fetch: str):
        cursor = self._run(sql, params)
        if fetch == "one":
            # Drain RETURNING cursors so the statement is finished before commit.
            rows = cursor.fetchall()
            result = rows[0] if rows else None
        elif fetch == "all":
            result = cursor.fetchall()
        else:
            result = cursor.rowcount
        if not self._in_unit_of_work:
            self.db.commit()
        return result

    def _encode(self, table: str, column: str, value: Any) -> Any:
        if column in self._json_columns.get(table, ()) and value is not None:
            return json.dumps(value, ensure_ascii=False, default=_json_default)
        if column in self._boolean_columns.get(table, ()) and value is not None:
            return bool(value)
        if isinstance(value, Decimal) and self.kind == "sqlite":
            return float(value)
        if isinstance(value, (date, datetime)):
            return value.isoformat()
        return value

    def _decode(self, table: str, row: Any) -> dict:
        if row is None:
            return {}
        record = dict(row)
        json_columns = self._json_columns.get(table, ())
        boolean_columns = self._boolean_columns.get(table, ())
        for key, value in record.items():
            if key in json_columns and isinstance(value, str):
                try:
                    record[key] = json.loads(value)
                except json.JSONDecodeError:
                    record[key] = []
            elif key in boolean_columns and value is not None:
                record[key] = bool(value)
            elif isinstance(value, Decimal):
                record[key] = float(value)
            elif isinstance(value, (date, datetime)):
                record[key] = value.isoformat()
        return record


class RestRowStore(RowStore):
    kind = "rest"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        rest_path: str = "/rest/v1",
        timeout: int = 20,
        verify_ssl: bool = True,
    ) -> None:
        if not str(base_url or "").strip():
            raise RowStoreError("BACKEND_URL no configurada.")
        self.base_url = str(base_url).rstrip("/")
        self.rest_path = "/" + str(rest_path or "").strip("/") if str(rest_path or "").strip("/") else ""
        self.api_key = api_key
        self.timeout = int(timeout)
        self.verify_ssl = bool(verify_ssl)

    def select(
        self,
        table: str,
        *,
        filters: Iterable[Filter] = (),
        any_of: Iterable[Filter] = (),
        order_by: Sequence[str] | None = None,
        limit: int | None = None,
        columns: Sequence[str] | None = None,
    ) -> List[dict]:
        query: List[tuple[str, str]] = [("select", ",".join(columns) if columns else "*")]
        query.extend(self._filter_params(filters, any_of))
        terms = _order_terms(order_by)
        if terms:
            query.append(("order", ",".join(f"{name}.{'desc' if desc else 'asc'}" for name, desc in terms)))
        if limit is not None:
            query.append(("limit", str(int(limit))))
        return _normalize_rows(self._request_json("GET", self.table_url(table, query)))

    def insert(self, table: str, values: Dict[str, Any]) -> dict:
        rows = _normalize_rows(
            self._request_json(
                "POST",
                self.table_url(table, [("select", "*")]),
                payload=values,
                prefer="return=representation",
            )
        )
        if not rows:
            raise RowStoreError(f"Backend no devolvió la fila insertada en {table}.")
        return rows[0]

    def update(self, table: str, values: Dict[str, Any], *, filters: Iterable[Filter]) -> List[dict]:
        params = self._filter_params(filters, ())
        if not params:
            raise ValueError("update requires at least one filter")
        return _normalize_rows(
            self._request_json(
                "PATCH",
                self.table_url(table, params),
                payload=values,
                prefer="return=representation",
            )
        )

    def delete(self, table: str, *, filters: Iterable[Filter]) -> int:
        params = self._filter_params(filters, ())
        if not params:
            raise ValueError("delete requires at least one filter")
        rows = _normalize_rows(
            self._request_json("DELETE", self.table_url(table, params), prefer="return=representation")
        )
        return len(rows)

    def table_url(self, table: str, query: List[tuple[str, str]]) -> str:
        url = f"{self.base_url}{self.rest_path}/{_check_identifier(table)}"
        if query:
            url = f"{url}?{urllib.parse.urlencode(query, safe='*,().:', quote_via=urllib.parse.quote)}"
        return url

    def _filter_params(self, filters: Iterable[Filter], any_of: Iterable[Filter]) -> List[tuple[str, str]]:
        params = [(item.column, self._operand(item)) for item in filters]
        alternatives = list(any_of)
        if alternatives:
            joined = ",".join(f"{item.column}.{self._operand(item)}" for item in alternatives)
            params.append(("or", f"({joined})"))
        return params

    @staticmethod
    def _operand(item: Filter) -> str:
        if item.op == "is" or (item.op == "eq" and item.value is None):
            return "is.null"
        if item.op == "in":
            return "in.(" + ",".join(_rest_literal(value) for value in item.value or []) + ")"
        if item.op == "ilike":
            return "ilike." + str(item.value).replace("%", "*")
        return f"{item.op}.{_rest_literal(item.value)}"

    def _request_json(
        self,
        method: str,
        url: str,
        payload: Dict[str, Any] | None = None,
        prefer: str | None = None,
    ) -> object:
        headers = {
            "Accept": "application/json",
            "apikey": str(self.api_key or ""),
            "Authorization": f"Bearer {self.api_key}",
        }
        if prefer:
            headers["Prefer"] = prefer

        data = None
        if payload is not None:
            headers["Content-Type"] = "application/json"
            data = json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=_json_default).encode("utf-8")

        request = urllib.request.Request(url, data=data, headers=headers, method=method.upper())

        context = None
        if not self.verify_ssl:
            context = ssl._create_unverified_context()

        try:
            with urllib.request.urlopen(request, timeout=self.timeout, context=context) as response:
                body = response.read().decode("utf-8")
                if not body:
                    return []
                return json.loads(body)
        except urllib.error.HTTPError as exc:
            error_body = exc.read().decode("utf-8") if exc.fp else ""
            raise RowStoreError(f"Backend HTTP {exc.code}: {error_body[:200]}") from exc
        except urllib.error.URLError as exc:
            raise RowStoreError(f"Error de conexión con el backend: {exc.reason}") from exc
        except json.JSONDecodeError as exc:
            raise RowStoreError("El backend devolvió JSON inválido.") from exc


def _rest_literal(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    text = str(value)
    if any(ch in text for ch in ',()"'):
        return '"' + text.replace('"', '\\"') + '"'
    return text


def _normalize_rows(payload: object) -> List[dict]:
    if isinstance(payload, list):
        return [item for item in payload if isinstance(item, dict)]
    if isinstance(payload, dict):
        return [payload]
    return []


def build_row_store(config, db: Database | None = None) -> RowStore:
    if backend_kind(config.get("BACKEND_URL")) == "rest":
        return RestRowStore(
            config["BACKEND_URL"],
            config.get("BACKEND_KEY"),
            rest_path=config.get("BACKEND_REST_PATH", "/rest/v1"),
            timeout=int(config.get("BACKEND_TIMEOUT_SECONDS", 20)),
            verify_ssl=bool(config.get("BACKEND_VERIFY_SSL", True)),
        )
    if db is None:
        raise RowStoreError("SQL backend requires an open database connection.")
    return SqlRowStore(db)


def get_row_store() -> RowStore:
    if "row_store" not in g:
        config = current_app.config
        db = None if backend_kind(config.get("BACKEND_URL")) == "rest" else get_db()
        g.row_store = build_row_store(config, db)
    return g.row_store
