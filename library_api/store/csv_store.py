import csv
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Type

from pydantic import ValidationError as PydanticValidationError

from library_api.errors import StoreUnavailable
from library_api.schemas.records import BookCopy, Record
from library_api.store.base import InventoryStore, StoreSession, R
from library_api.store.schema import TABLES, Table, table_for

logger = logging.getLogger(__name__)


class CsvStore(InventoryStore):
    """Inventory kept as one CSV file per table under ``directory``.

    A single lock serializes every unit of work, so a read-modify-write on
    the files never interleaves with another one from this process.
    """

    backend = "csv"

    def __init__(self, directory, timeout: float = 5.0):
        self.directory = Path(directory)
        self.timeout = timeout
        self._lock = threading.Lock()

    @contextmanager
    def session(self) -> Iterator["CsvStoreSession"]:
        if not self._lock.acquire(timeout=self.timeout):
            logger.error(f"CSV store lock not acquired within {self.timeout}s")
            raise StoreUnavailable("CSV store is busy, try again")
        try:
            db = CsvStoreSession(self)
            yield db
            db.flush()
        finally:
            self._lock.release()

    def path_for(self, table: Table) -> Path:
        return self.directory / table.filename

    def read_table(self, table: Table) -> Dict[str, Record]:
        path = self.path_for(table)
        if not path.exists():
            return {}

        rows: Dict[str, Record] = {}
        try:
            with open(path, newline="", encoding="utf-8") as f:
                reader = csv.reader(f)
                header = next(reader, None)
                if not header:
                    return {}
                columns = [table.canonical(h) for h in header]
                for line_no, values in enumerate(reader, start=2):
                    if not any(v.strip() for v in values):
                        continue
                    raw = {col: val.strip() for col, val in zip(columns, values) if col in table.record.model_fields}
                    try:
                        record = table.record.model_validate(raw)
                    except PydanticValidationError as e:
                        logger.warning(f"Skipping invalid row {line_no} in {path.name}: {e.error_count()} error(s)")
                        continue
                    rows[getattr(record, table.key)] = record
        except OSError as e:
            logger.error(f"Error reading {path}: {e}", exc_info=True)
            raise StoreUnavailable(f"Unable to read {table.filename}") from e
        return rows

    def write_table(self, table: Table, rows: Dict[str, Record]) -> None:
        path = self.path_for(table)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{table.filename}.", dir=self.directory)
            try:
                with os.fdopen(fd, "w", newline="", encoding="utf-8") as f:
                    writer = csv.DictWriter(f, fieldnames=table.fields)
                    writer.writeheader()
                    for record in rows.values():
                        data = record.model_dump(mode="json")
                        writer.writerow({k: "" if v is None else v for k, v in data.items()})
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            logger.error(f"Error writing {path}: {e}", exc_info=True)
            raise StoreUnavailable(f"Unable to save {table.filename}") from e

    def __repr__(self):
        return f"CsvStore({str(self.directory)!r})"


class CsvStoreSession(StoreSession):
    """Tables are loaded on first use and written back on flush if touched."""

    def __init__(self, store: CsvStore):
        self._store = store
        self._tables: Dict[str, Dict[str, Record]] = {}
        self._dirty = set()

    def _rows(self, table: Table) -> Dict[str, Record]:
        if table.name not in self._tables:
            self._tables[table.name] = self._store.read_table(table)
        return self._tables[table.name]

    def get(self, record_type: Type[R], key: str) -> Optional[R]:
        table = table_for(record_type)
        record = self._rows(table).get(key)
        return record.model_copy() if record is not None else None

    def list(self, record_type: Type[R], **filters) -> List[R]:
        table = table_for(record_type)
        rows = sorted(self._rows(table).items())
        return [
            record.model_copy()
            for _, record in rows
            if all(getattr(record, name) == value for name, value in filters.items())
        ]

    def add(self, record: Record) -> None:
        table = table_for(record)
        self._rows(table)[getattr(record, table.key)] = record.model_copy()
        self._dirty.add(table.name)

    def update(self, record: Record) -> None:
        self.add(record)

    def delete(self, record_type: Type[Record], key: str) -> None:
        table = table_for(record_type)
        if self._rows(table).pop(key, None) is not None:
            self._dirty.add(table.name)

    def first_available_copy(self, book_id: str) -> Optional[BookCopy]:
        # Already exclusive: the store lock is held for the whole session
        for copy in self.list(BookCopy, book_id=book_id):
            if copy.is_available:
                return copy
        return None

    def flush(self) -> None:
        for table in TABLES:
            if table.name in self._dirty:
                self._store.write_table(table, self._tables[table.name])
                logger.debug(f"Wrote {len(self._tables[table.name])} rows to {table.filename}")
        self._dirty.clear()
