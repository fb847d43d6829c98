"""Runtime settings: defaults, optional YAML file, then environment."""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

ENV_PREFIX = "GIGLEDGER_"
DEFAULT_CONFIG_FILE = "gigledger.yaml"


class Settings:
    """Engine tunables. Everything has a working default."""

    def __init__(
        self,
        data_file: Optional[str] = None,
        sweep_interval_hours: float = 24,
        tick_seconds: float = 1,
        gps_accuracy_limit_m: float = 50,
        max_session_points: int = 10000,
        point_batch_size: int = 100,
        log_level: str = "INFO",
    ):
        self.data_file = data_file
        self.sweep_interval_hours = sweep_interval_hours
        self.tick_seconds = tick_seconds
        self.gps_accuracy_limit_m = gps_accuracy_limit_m
        self.max_session_points = max_session_points
        self.point_batch_size = point_batch_size
        self.log_level = log_level

    @property
    def sweep_interval_seconds(self) -> float:
        return self.sweep_interval_hours * 3600


# Setting name -> type used to coerce file and environment values
FIELDS = {
    "data_file": str,
    "sweep_interval_hours": float,
    "tick_seconds": float,
    "gps_accuracy_limit_m": float,
    "max_session_points": int,
    "point_batch_size": int,
    "log_level": str,
}


def _coerce(name: str, value: Any) -> Any:
    try:
        return FIELDS[name](value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid value for {name}: {value!r}") from e


def load_settings(filename: Optional[Union[str, Path]] = None) -> Settings:
    """
    Build Settings from defaults, then a YAML file, then the environment.

    The YAML file defaults to ``gigledger.yaml`` in the working directory
    and is optional. Environment variables are ``GIGLEDGER_<NAME>``
    (e.g. ``GIGLEDGER_DATA_FILE``); a ``.env`` file is honoured.
    """
    load_dotenv(find_dotenv(usecwd=True))
    values: Dict[str, Any] = {}

    path = Path(filename) if filename else Path(DEFAULT_CONFIG_FILE)
    if path.exists():
        with open(path, "r") as fp:
            data = yaml.load(fp, Loader=yaml.SafeLoader) or {}
        for name, value in data.items():
            key = name.replace("-", "_")
            if key not in FIELDS:
                logger.warning("Ignoring unknown setting '%s' in %s", name, path)
                continue
            values[key] = _coerce(key, value)
    elif filename:
        raise FileNotFoundError(f"Config file not found: {path}")

    for name in FIELDS:
        env_value = os.environ.get(ENV_PREFIX + name.upper())
        if env_value is not None:
            values[name] = _coerce(name, env_value)

    return Settings(**values)
