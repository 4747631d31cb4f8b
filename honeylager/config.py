"""Configuration module - frozen dataclass loaded from YAML, env vars and CLI args."""

import argparse
import logging
import os
from dataclasses import dataclass

import yaml

from honeylager.models import LogLevel, parse_level

logger = logging.getLogger(__name__)

DEFAULT_API_HOST = "https://api.honeycomb.io"


@dataclass(frozen=True)
class SinkConfig:
    write_key: str = ""
    dataset: str = "honeylager"
    min_level: LogLevel = LogLevel.DEBUG
    api_host: str = DEFAULT_API_HOST
    send_timeout: float = 10.0
    max_pending: int = 10000

    def __post_init__(self):
        # frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "min_level", parse_level(self.min_level))
        if self.send_timeout <= 0:
            raise ValueError(f"send_timeout must be positive, got {self.send_timeout}")
        if self.max_pending <= 0:
            raise ValueError(f"max_pending must be positive, got {self.max_pending}")


# config key -> (environment variable, converter)
_ENV_VARS = {
    "write_key": ("HONEYCOMB_WRITE_KEY", str),
    "dataset": ("HONEYCOMB_DATASET", str),
    "min_level": ("HONEYLAGER_MIN_LEVEL", parse_level),
    "api_host": ("HONEYCOMB_API_HOST", str),
    "send_timeout": ("SEND_TIMEOUT", float),
    "max_pending": ("MAX_PENDING", int),
}


def load_yaml_config(path: str | None) -> dict:
    """Load sink settings from a YAML file. Returns empty dict if no path."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        logger.info("Loaded YAML config from %s", path)
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}

    unknown = set(data) - set(_ENV_VARS)
    if unknown:
        logger.warning("Ignoring unknown config keys in %s: %s", path, sorted(unknown))
    return {key: value for key, value in data.items() if key in _ENV_VARS}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Ship log records to Honeycomb")
    parser.add_argument("--config", type=str, default=None)
    parser.add_argument("--write-key", type=str, default=None)
    parser.add_argument("--dataset", type=str, default=None)
    parser.add_argument("--min-level", type=parse_level, default=None)
    parser.add_argument("--api-host", type=str, default=None)
    parser.add_argument("--send-timeout", type=float, default=None)
    parser.add_argument("--max-pending", type=int, default=None)
    return parser


def load_config(argv=None) -> SinkConfig:
    """Build SinkConfig from defaults <- YAML file <- env vars <- CLI args.

    Pass argv for testability; when None, argparse reads sys.argv.
    """
    args = _build_parser().parse_args(argv)

    config_path = args.config or os.environ.get("HONEYLAGER_CONFIG")
    kwargs: dict = load_yaml_config(config_path)

    for key, (env_var, convert) in _ENV_VARS.items():
        raw = os.environ.get(env_var)
        if raw is not None:
            kwargs[key] = convert(raw)

    for key in _ENV_VARS:
        value = getattr(args, key)
        if value is not None:
            kwargs[key] = value

    return SinkConfig(**kwargs)
