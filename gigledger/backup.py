"""Full-snapshot export and import, validated against backup_schema.yaml."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import yaml
from jsonschema import ValidationError as SchemaError
from jsonschema import validate

from . import codec
from .errors import PersistenceError, ValidationError
from .state import SETTING_ATTRS, AppState

logger = logging.getLogger(__name__)

BACKUP_VERSION = 1
SCHEMA_FILE = Path(__file__).parent / "backup_schema.yaml"

# Store table -> snapshot key
SNAPSHOT_KEYS = {
    "categories": "categories",
    "vehicles": "vehicles",
    "cost_configs": "costConfigs",
    "costs": "costs",
    "maintenances": "maintenances",
    "sessions": "kmTrackerSessions",
    "apps": "revenueApps",
    "earnings": "earningsRecords",
}

_schema: Optional[dict] = None


def load_schema() -> dict:
    """Load (once) the JSON schema for backup files."""
    global _schema
    if _schema is None:
        with open(SCHEMA_FILE) as f:
            _schema = yaml.safe_load(f)
    return _schema


def validate_snapshot(snapshot: Any, schema: Optional[dict] = None) -> List[str]:
    """Check a snapshot against the schema. Returns a list of errors."""
    errors = []
    try:
        validate(instance=snapshot, schema=schema or load_schema())
    except SchemaError as e:
        errors.append(f"Schema validation error: {e.message}")
        if e.path:
            errors.append(f"  at path: {'.'.join(str(p) for p in e.path)}")
    return errors


def export_snapshot(state: AppState, clock: Callable[[], datetime] = datetime.now) -> dict:
    """
    Snapshot every entity and setting as camelCase records.

    Open (active or paused) tracking sessions are left out.
    """
    data: Dict[str, Any] = {}
    for kind, key in SNAPSHOT_KEYS.items():
        entities = state.all(kind)
        if kind == "sessions":
            entities = [s for s in entities if not s.status.is_open]
        data[key] = [codec.encode(kind, e) for e in entities]
    for key, attr in SETTING_ATTRS.items():
        data[key] = codec.SETTINGS[key][0](getattr(state, attr))
    return {
        "version": BACKUP_VERSION,
        "timestamp": clock().isoformat(),
        "data": data,
    }


def import_snapshot(state: AppState, snapshot: Any) -> None:
    """
    Replace everything with the snapshot's contents.

    The snapshot is validated and decoded in full before anything is
    written; the replacement itself is one atomic store write.
    """
    errors = validate_snapshot(snapshot)
    if errors:
        raise ValidationError("Invalid backup: " + "; ".join(errors))

    data = snapshot["data"]
    tables: Dict[str, List[dict]] = {}
    for kind, key in SNAPSHOT_KEYS.items():
        records = data.get(key) or []
        try:
            entities = [codec.decode(kind, r) for r in records]
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Invalid backup: bad record in '{key}': {e}") from e
        tables[kind] = [codec.encode(kind, e) for e in entities]

    open_sessions = [
        r for r in tables["sessions"] if r.get("status") in ("active", "paused")
    ]
    if len(open_sessions) > 1:
        raise ValidationError("Invalid backup: more than one open tracking session")

    settings = {}
    for key in SETTING_ATTRS:
        if data.get(key) is not None:
            try:
                encoder, decoder = codec.SETTINGS[key]
                settings[key] = encoder(decoder(data[key]))
            except (KeyError, TypeError, ValueError) as e:
                raise ValidationError(f"Invalid backup: bad '{key}': {e}") from e

    try:
        state.store.replace_all(tables, settings)
    except PersistenceError:
        logger.error("Backup import failed; existing data kept", exc_info=True)
        raise
    state.load()
    logger.info(
        "Imported backup from %s (%s)",
        snapshot.get("timestamp"),
        ", ".join(f"{k}={len(v)}" for k, v in tables.items()),
    )


def save_backup(
    state: AppState,
    filename: Union[str, Path],
    clock: Callable[[], datetime] = datetime.now,
) -> dict:
    snapshot = export_snapshot(state, clock)
    try:
        with open(filename, "w") as fp:
            json.dump(snapshot, fp, indent=2, ensure_ascii=False)
    except OSError as e:
        raise PersistenceError(f"Cannot write backup {filename}: {e}") from e
    logger.info("Backup written to %s", filename)
    return snapshot


def read_backup(filename: Union[str, Path]) -> Any:
    try:
        with open(filename, "r") as fp:
            return json.load(fp)
    except OSError as e:
        raise PersistenceError(f"Cannot read backup {filename}: {e}") from e
    except json.JSONDecodeError as e:
        raise ValidationError(f"Backup {filename} is not valid JSON: {e}") from e


def load_backup(state: AppState, filename: Union[str, Path]) -> None:
    import_snapshot(state, read_backup(filename))
