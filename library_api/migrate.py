"""Copy every table from the CSV files into the SQL database.

    python -m library_api.migrate --csv-dir csv_files --database-url sqlite:///library.db

Rows already present in the database (same primary key) are left alone.
"""

import logging
from typing import Dict, Optional

import typer

from library_api.config import settings
from library_api.database import build_database_url
from library_api.errors import IntegrityViolation, StoreUnavailable
from library_api.schemas.records import Book
from library_api.services.circulation import refresh_counts
from library_api.store import CsvStore, InventoryStore, SqlStore
from library_api.store.schema import BOOKS, TABLES

logger = logging.getLogger(__name__)

app = typer.Typer(help="CSV to SQL migration for the library store")


def migrate(source: InventoryStore, target: InventoryStore) -> Dict[str, int]:
    """Import every table of ``source`` into ``target``; returns rows inserted per table.

    Each row is its own unit of work, so a row that breaks a constraint is
    logged and skipped without losing the rest. Stored book counts are not
    trusted: books go in at 0/0 and are recounted from their copies at the end.
    """
    inserted: Dict[str, int] = {}
    with source.session() as src:
        snapshot = {table.name: src.list(table.record) for table in TABLES}

    for table in TABLES:
        rows = snapshot[table.name]
        count = 0
        for record in rows:
            key = getattr(record, table.key)
            if table is BOOKS:
                record = record.model_copy(update={"total": 0, "available": 0})
            try:
                with target.session() as dst:
                    if dst.get(table.record, key) is not None:
                        continue
                    dst.add(record)
            except IntegrityViolation as e:
                logger.warning(f"Skipped {table.name} row {key}: {e}")
                continue
            count += 1
        inserted[table.name] = count
        logger.info(f"Imported {count} of {len(rows)} rows from {table.filename}")

    with target.session() as dst:
        for book in dst.list(Book):
            refresh_counts(dst, book)
    return inserted


@app.command()
def run(
    csv_dir: str = typer.Option(settings.csv_dir, "--csv-dir", help="Directory holding the CSV files"),
    database_url: Optional[str] = typer.Option(None, "--database-url", help="SQLAlchemy URL, defaults to settings"),
):
    """Import the CSV tables into the database."""
    url = database_url or build_database_url(settings)
    source = CsvStore(csv_dir, timeout=settings.store_timeout_seconds)
    target = SqlStore(url, timeout=settings.store_timeout_seconds, ssl_mode=settings.db_ssl_mode)
    try:
        inserted = migrate(source, target)
    except StoreUnavailable as e:
        typer.echo(f"Migration failed: {e}", err=True)
        raise typer.Exit(code=1)
    finally:
        target.close()

    for name, count in inserted.items():
        typer.echo(f"{name}: {count} row(s) imported")
    typer.echo("Migration completed.")


if __name__ == "__main__":
    app()
