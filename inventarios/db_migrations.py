from __future__ import annotations

from pathlib import Path

import click
from alembic import command
from alembic.config import Config as AlembicConfig
from flask import Flask

from inventarios.config import backend_kind


def _project_root() -> Path:
    return Path(__file__).resolve().parents[1]


def _normalize_postgres_url(url: str) -> str:
    if url.startswith("postgres://"):
        return "postgresql://" + url[len("postgres://") :]
    return url


def to_sqlalchemy_url(backend_url: str) -> str:
    raw = (backend_url or "").strip()
    if not raw:
        raise RuntimeError("BACKEND_URL indefinida para migraciones.")
    if backend_kind(raw) == "rest":
        raise RuntimeError("Las migraciones no aplican a un backend REST; el esquema lo administra el servicio remoto.")

    normalized = _normalize_postgres_url(raw)
    if normalized.startswith(("postgresql://", "postgresql+")):
        return normalized
    if normalized.startswith(("sqlite://", "sqlite+pysqlite://")):
        return normalized

    sqlite_path = Path(normalized).expanduser().resolve()
    return f"sqlite:///{sqlite_path.as_posix()}"


def build_alembic_config(app: Flask) -> AlembicConfig:
    root = _project_root()
    alembic_ini = root / "alembic.ini"
    if not alembic_ini.exists():
        raise RuntimeError("alembic.ini no encontrado en la raíz del proyecto.")

    alembic_cfg = AlembicConfig(str(alembic_ini))
    alembic_cfg.set_main_option("script_location", str((root / "migrations").as_posix()))
    alembic_cfg.set_main_option("sqlalchemy.url", to_sqlalchemy_url(app.config["BACKEND_URL"]))
    return alembic_cfg


def _alembic_config_or_abort(app: Flask) -> AlembicConfig:
    try:
        return build_alembic_config(app)
    except RuntimeError as exc:
        raise click.ClickException(str(exc)) from exc


def register_db_cli(app: Flask) -> None:
    @app.cli.group("db")
    def db_group() -> None:
        """Comandos de esquema y migraciones (Alembic)."""

    @db_group.command("upgrade")
    @click.argument("revision", required=False, default="head")
    def db_upgrade(revision: str) -> None:
        command.upgrade(_alembic_config_or_abort(app), revision)
        click.echo(f"Migración aplicada hasta {revision}.")

    @db_group.command("downgrade")
    @click.argument("revision", required=False, default="-1")
    def db_downgrade(revision: str) -> None:
        command.downgrade(_alembic_config_or_abort(app), revision)
        click.echo(f"Rollback aplicado hasta {revision}.")

    @db_group.command("current")
    def db_current() -> None:
        command.current(_alembic_config_or_abort(app), verbose=True)

    @db_group.command("init-schema")
    def db_init_schema() -> None:
        from inventarios.db import init_db

        if backend_kind(app.config.get("BACKEND_URL")) == "rest":
            raise click.ClickException("init-schema requiere un backend SQL (sqlite o PostgreSQL).")
        init_db()
        click.echo("Esquema creado.")
