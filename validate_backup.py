#!/usr/bin/env python3
"""Validate ledger backup files against the backup schema."""
import json
import sys
from pathlib import Path
from typing import List

from gigledger.backup import load_schema, validate_snapshot


def validate_backup_file(filepath: Path, schema: dict) -> List[str]:
    """Validate a single backup JSON file. Returns list of errors."""
    errors = []
    try:
        with open(filepath) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        errors.append(f"JSON parse error: {e}")
        return errors
    except OSError as e:
        errors.append(f"Error: {e}")
        return errors
    errors.extend(validate_snapshot(data, schema))
    return errors


def main(argv: List[str] = None) -> int:
    """Validate the given backup files (or every *.json in backups/)."""
    schema = load_schema()
    paths = [Path(p) for p in (sys.argv[1:] if argv is None else argv)]

    if not paths:
        backups_dir = Path("backups")
        if not backups_dir.exists():
            print(f"Error: backups directory not found: {backups_dir}")
            return 1
        paths = sorted(backups_dir.glob("*.json"))
        if not paths:
            print(f"Warning: No backup files found in {backups_dir}")
            return 0

    all_valid = True
    for filepath in paths:
        errors = validate_backup_file(filepath, schema)
        if errors:
            print(f"FAIL: {filepath.name}")
            for error in errors:
                print(f"  {error}")
            all_valid = False
        else:
            print(f"OK: {filepath.name}")

    return 0 if all_valid else 1


if __name__ == "__main__":
    sys.exit(main())
