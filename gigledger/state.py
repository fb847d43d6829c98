"""In-memory application state and its single persist-then-apply path."""

import copy
import functools
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

from . import codec
from .errors import LedgerError, NotFoundError, PersistenceError
from .schedule import ProfitSettings, WorkSchedule

logger = logging.getLogger(__name__)

KIND_LABELS = {
    "categories": "category",
    "vehicles": "vehicle",
    "cost_configs": "cost config",
    "costs": "cost",
    "maintenances": "maintenance",
    "sessions": "tracking session",
    "apps": "revenue app",
    "earnings": "earnings record",
}

# Setting key -> AppState attribute
SETTING_ATTRS = {
    "workSchedule": "work_schedule",
    "profitSettings": "profit_settings",
}


def synchronized(method: Callable) -> Callable:
    """Run a service method while holding its state's lock."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self.state.lock:
            return method(self, *args, **kwargs)

    return wrapper


class Transaction:
    """
    A group of writes committed together by ``AppState.commit``.

    ``update`` stages a shallow copy of the entity; assign new lists rather
    than mutating nested ones so memory stays untouched until commit.
    """

    def __init__(self, state: "AppState"):
        self.state = state
        self.ops: List[Tuple[str, str, Any]] = []
        self._staged: Dict[Tuple[str, str], Any] = {}
        self._deleted: set = set()
        self._after_commit: List[Callable[[], None]] = []

    @property
    def empty(self) -> bool:
        return not self.ops

    def current(self, kind: str, entity_id: str) -> Optional[Any]:
        """The entity as this transaction sees it (staged or in memory)."""
        if (kind, entity_id) in self._deleted:
            return None
        staged = self._staged.get((kind, entity_id))
        if staged is not None:
            return staged
        return self.state.get(kind, entity_id)

    def insert(self, kind: str, entity: Any) -> Any:
        self.ops.append(("insert", kind, entity))
        self._staged[(kind, entity.id)] = entity
        return entity

    def update(self, kind: str, entity_id: str, **fields: Any) -> Any:
        entity = self.current(kind, entity_id)
        if entity is None:
            raise NotFoundError(KIND_LABELS.get(kind, kind), entity_id)
        staged = copy.copy(entity)
        for name, value in fields.items():
            if not hasattr(staged, name):
                raise AttributeError(f"{type(staged).__name__} has no field '{name}'")
            setattr(staged, name, value)
        self._staged[(kind, entity_id)] = staged
        self.ops.append(("update", kind, staged))
        return staged

    def delete(self, kind: str, entity_id: str) -> None:
        if self.current(kind, entity_id) is None:
            raise NotFoundError(KIND_LABELS.get(kind, kind), entity_id)
        self._staged.pop((kind, entity_id), None)
        self._deleted.add((kind, entity_id))
        self.ops.append(("delete", kind, entity_id))

    def set_setting(self, key: str, value: Any) -> None:
        self.ops.append(("setting", key, value))

    def after_commit(self, callback: Callable[[], None]) -> None:
        """Run callback once the writes are durable (notifications etc.)."""
        self._after_commit.append(callback)


class AppState:
    """
    Single source of truth for all entities.

    Memory only changes through ``commit``: the writes are sent to the
    store as one atomic group first, and applied to memory only if that
    succeeded. ``lock`` serializes writers across threads; services take
    it for the whole read-stage-commit sequence.
    """

    def __init__(self, store: Any):
        self.store = store
        self.lock = threading.RLock()
        self._tables: Dict[str, Dict[str, Any]] = {kind: {} for kind in codec.KINDS}
        self.work_schedule = WorkSchedule()
        self.profit_settings = ProfitSettings()

    def load(self) -> None:
        """(Re)build memory from the store."""
        for kind in codec.KINDS:
            self._tables[kind] = {}
            for record in self.store.get_all(kind):
                entity = codec.decode(kind, record)
                self._tables[kind][entity.id] = entity
        for key, attr in SETTING_ATTRS.items():
            decoder = codec.SETTINGS[key][1]
            setattr(self, attr, decoder(self.store.get_setting(key)))
        logger.debug(
            "State loaded: %s",
            ", ".join(f"{k}={len(v)}" for k, v in self._tables.items()),
        )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def all(self, kind: str) -> List[Any]:
        return list(self._tables[kind].values())

    def get(self, kind: str, entity_id: Optional[str]) -> Optional[Any]:
        if entity_id is None:
            return None
        return self._tables[kind].get(entity_id)

    def require(self, kind: str, entity_id: Optional[str]) -> Any:
        entity = self.get(kind, entity_id)
        if entity is None:
            raise NotFoundError(KIND_LABELS.get(kind, kind), str(entity_id))
        return entity

    @property
    def categories(self) -> List[Any]:
        return self.all("categories")

    @property
    def vehicles(self) -> List[Any]:
        return self.all("vehicles")

    @property
    def cost_configs(self) -> List[Any]:
        return self.all("cost_configs")

    @property
    def costs(self) -> List[Any]:
        return self.all("costs")

    @property
    def maintenances(self) -> List[Any]:
        return self.all("maintenances")

    @property
    def sessions(self) -> List[Any]:
        return self.all("sessions")

    @property
    def apps(self) -> List[Any]:
        return self.all("apps")

    @property
    def earnings(self) -> List[Any]:
        return self.all("earnings")

    @property
    def active_session(self) -> Optional[Any]:
        for session in self._tables["sessions"].values():
            if session.status.is_open:
                return session
        return None

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def begin(self) -> Transaction:
        return Transaction(self)

    def commit(self, tx: Transaction) -> None:
        """Persist the transaction atomically, then apply it to memory."""
        with self.lock:
            if not tx.empty:
                try:
                    self.store.run_atomic(lambda: self._persist(tx))
                except LedgerError:
                    logger.error("Write rejected by store; memory unchanged", exc_info=True)
                    raise
                except Exception as e:
                    logger.error("Store failure; memory unchanged", exc_info=True)
                    raise PersistenceError(str(e)) from e
                self._apply(tx)

        for callback in tx._after_commit:
            try:
                callback()
            except Exception:
                logger.warning("After-commit callback failed", exc_info=True)

    def _persist(self, tx: Transaction) -> None:
        for op, kind, payload in tx.ops:
            if op == "insert":
                self.store.insert(kind, codec.encode(kind, payload))
            elif op == "update":
                self.store.update(kind, payload.id, self._diff(kind, payload))
            elif op == "delete":
                self.store.delete(kind, payload)
            elif op == "setting":
                encoder = codec.SETTINGS[kind][0]
                self.store.save_setting(kind, encoder(payload))

    def _diff(self, kind: str, staged: Any) -> Dict[str, Any]:
        """Fields of staged that differ from memory (None = removed)."""
        new = codec.encode(kind, staged)
        original = self.get(kind, staged.id)
        if original is None:
            return new
        old = codec.encode(kind, original)
        fields = {k: v for k, v in new.items() if old.get(k) != v}
        fields.update({k: None for k in old if k not in new})
        return fields

    def _apply(self, tx: Transaction) -> None:
        for op, kind, payload in tx.ops:
            if op in ("insert", "update"):
                self._tables[kind][payload.id] = payload
            elif op == "delete":
                self._tables[kind].pop(payload, None)
            elif op == "setting":
                setattr(self, SETTING_ATTRS[kind], payload)
