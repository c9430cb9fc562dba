"""``flask backend`` commands for checking the configured row store by hand.

Both commands print their progress and exit with status 0 on success and
1 on failure.
"""

from __future__ import annotations

import sys

import click
from flask import Flask

from inventarios.config import backend_kind
from inventarios.row_store import Filter, RowStoreError, get_row_store


VERIFICATION_PROVIDER = {
    "business_name": "Proveedor Verificación",
    "ruc": "80000000-1",
    "type": "contract",
    "contact_person": "Ana Rodríguez",
    "phone": "0991234569",
    "phones": ["0991234569"],
    "email": "verificacion@proveedor.com",
    "address": "Dirección de verificación",
    "payment_terms": 45,
    "product_type_ids": [],
    "contract_number": "CON-VERIFICACION",
    "contract_start_date": "2024-01-15",
    "delivery_frequency": "weekly",
    "status": "active",
}


def check_connection(echo=click.echo) -> bool:
    try:
        rows = get_row_store().select("product_types", limit=1)
    except RowStoreError as exc:
        echo(f"Error de conexión: {exc}")
        return False
    echo(f"Conexión exitosa. Filas leídas de product_types: {len(rows)}")
    return True


def verify_providers(echo=click.echo) -> bool:
    store = get_row_store()
    inserted: dict | None = None
    try:
        inserted = store.insert("providers", dict(VERIFICATION_PROVIDER))
        echo(f"Proveedor insertado: id={inserted.get('id')}")
        fetched = store.select_one("providers", filters=[Filter("id", "eq", inserted.get("id"))])
        if not fetched or fetched.get("business_name") != VERIFICATION_PROVIDER["business_name"]:
            echo("El proveedor insertado no pudo leerse de vuelta.")
            return False
        echo(f"Proveedor leído: {fetched.get('business_name')} ({fetched.get('type')})")
    except RowStoreError as exc:
        echo(f"Error verificando proveedores: {exc}")
        return False
    finally:
        if inserted and inserted.get("id") is not None:
            try:
                store.delete("providers", filters=[Filter("id", "eq", inserted.get("id"))])
            except RowStoreError as exc:
                echo(f"No se pudieron limpiar los datos de prueba: {exc}")
    echo("Verificación de proveedores completada.")
    return True


def register_backend_cli(app: Flask) -> None:
    @app.cli.group("backend")
    def backend_group() -> None:
        """Verificación manual del backend de datos."""

    @backend_group.command("check")
    def backend_check() -> None:
        click.echo(f"Backend: {backend_kind(app.config.get('BACKEND_URL'))}")
        sys.exit(0 if check_connection() else 1)

    @backend_group.command("verify-providers")
    def backend_verify_providers() -> None:
        click.echo(f"Backend: {backend_kind(app.config.get('BACKEND_URL'))}")
        sys.exit(0 if verify_providers() else 1)
