"""YAML-backed persistence port: entity tables keyed by id plus settings."""

import copy
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, TypeVar, Union

import yaml

from .errors import PersistenceError

logger = logging.getLogger(__name__)

STORE_VERSION = 1

Record = Dict[str, Any]
T = TypeVar("T")


class YamlStore:
    """
    Durable store for entity records.

    Records are plain camelCase dicts grouped in named tables. Every write
    is flushed to the YAML file unless it runs inside ``run_atomic``, in
    which case the whole group is flushed once at the end or rolled back
    entirely if anything raises. Without a filename the store lives in
    memory only.
    """

    def __init__(self, filename: Optional[Union[str, Path]] = None):
        self.filename = Path(filename) if filename else None
        self._tables: Dict[str, Dict[str, Record]] = {}
        self._settings: Dict[str, Any] = {}
        self._depth = 0
        if self.filename is not None and self.filename.exists():
            self._load()

    # -------------------------------------------------------------------------
    # Table CRUD
    # -------------------------------------------------------------------------

    def insert(self, kind: str, record: Record) -> None:
        table = self._tables.setdefault(kind, {})
        record_id = record.get("id")
        if not record_id:
            raise PersistenceError(f"Record for '{kind}' has no id")
        if record_id in table:
            raise PersistenceError(f"Duplicate id '{record_id}' in '{kind}'")
        table[record_id] = copy.deepcopy(record)
        self._flush()

    def update(self, kind: str, record_id: str, fields: Record) -> None:
        """Merge fields into a record. A None value removes the field."""
        row = self._row(kind, record_id)
        for key, value in fields.items():
            if key == "id":
                continue
            if value is None:
                row.pop(key, None)
            else:
                row[key] = copy.deepcopy(value)
        self._flush()

    def delete(self, kind: str, record_id: str) -> None:
        self._row(kind, record_id)
        del self._tables[kind][record_id]
        self._flush()

    def get(self, kind: str, record_id: str) -> Optional[Record]:
        row = self._tables.get(kind, {}).get(record_id)
        return copy.deepcopy(row) if row is not None else None

    def get_all(self, kind: str) -> List[Record]:
        return [copy.deepcopy(r) for r in self._tables.get(kind, {}).values()]

    def kinds(self) -> List[str]:
        return list(self._tables)

    # -------------------------------------------------------------------------
    # Settings (key/value)
    # -------------------------------------------------------------------------

    def get_setting(self, key: str, default: Any = None) -> Any:
        if key not in self._settings:
            return default
        return copy.deepcopy(self._settings[key])

    def save_setting(self, key: str, value: Any) -> None:
        self._settings[key] = copy.deepcopy(value)
        self._flush()

    # -------------------------------------------------------------------------
    # Grouped writes
    # -------------------------------------------------------------------------

    def run_atomic(self, work: Callable[[], T]) -> T:
        """
        Run work as one all-or-nothing write group.

        Nested calls join the outermost group.
        """
        with self.atomic():
            return work()

    @contextmanager
    def atomic(self) -> Iterator["YamlStore"]:
        """Context-manager form of ``run_atomic``."""
        outermost = self._depth == 0
        if outermost:
            snapshot = (copy.deepcopy(self._tables), copy.deepcopy(self._settings))
        self._depth += 1
        try:
            yield self
        except BaseException:
            if outermost:
                self._tables, self._settings = snapshot
            raise
        finally:
            self._depth -= 1
        if outermost:
            try:
                self._flush()
            except PersistenceError:
                self._tables, self._settings = snapshot
                raise

    def clear(self) -> None:
        self._tables = {}
        self._settings = {}
        self._flush()

    def replace_all(self, tables: Dict[str, List[Record]], settings: Record) -> None:
        """Clear everything, then bulk-insert tables and settings atomically."""

        def work():
            self.clear()
            for kind, records in tables.items():
                for record in records:
                    self.insert(kind, record)
            for key, value in settings.items():
                self.save_setting(key, value)

        self.run_atomic(work)

    # -------------------------------------------------------------------------
    # File I/O
    # -------------------------------------------------------------------------

    def _row(self, kind: str, record_id: str) -> Record:
        row = self._tables.get(kind, {}).get(record_id)
        if row is None:
            raise PersistenceError(f"No record '{record_id}' in '{kind}'")
        return row

    def _load(self) -> None:
        try:
            with open(self.filename, "r") as fp:
                data = yaml.load(fp, Loader=yaml.SafeLoader) or {}
        except (OSError, yaml.YAMLError) as e:
            raise PersistenceError(f"Cannot read {self.filename}: {e}") from e

        self._settings = data.get("settings") or {}
        self._tables = {
            kind: {r["id"]: r for r in records or []}
            for kind, records in (data.get("tables") or {}).items()
        }
        logger.debug("Loaded %s", self.filename)

    def _flush(self) -> None:
        if self._depth > 0 or self.filename is None:
            return
        data = {
            "version": STORE_VERSION,
            "settings": self._settings,
            "tables": {kind: list(rows.values()) for kind, rows in self._tables.items()},
        }
        tmp = self.filename.with_name(self.filename.name + ".tmp")
        try:
            with open(tmp, "w") as fp:
                yaml.dump(
                    data,
                    fp,
                    default_flow_style=False,
                    allow_unicode=True,
                    sort_keys=False,
                    width=120,
                )
            os.replace(tmp, self.filename)
        except OSError as e:
            raise PersistenceError(f"Cannot write {self.filename}: {e}") from e
