from __future__ import annotations

import os
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

from ..core.errors import ConfigError
from .models import DocExportConfig

ENV_PREFIX = "DOCEXPORT_"


def _parse_scalar(value: str) -> Any:
    v = value.strip()
    if v.lower() in {"true", "false"}:
        return v.lower() == "true"
    try:
        if "." in v:
            return float(v)
        return int(v)
    except ValueError:
        return value


def _set_by_path(data: dict, path: list[str], value: Any) -> None:
    """Set a nested value in a dict, creating intermediate mappings."""
    cur: Any = data
    for key in path[:-1]:
        if not isinstance(cur.get(key), dict):
            cur[key] = {}
        cur = cur[key]
    cur[path[-1]] = value


def _apply_env_overrides(cfg: dict, env: Mapping[str, str]) -> None:
    for k, v in env.items():
        if not k.startswith(ENV_PREFIX):
            continue
        keypath = [p for p in k[len(ENV_PREFIX) :].lower().split("__") if p]
        if not keypath:
            continue
        _set_by_path(cfg, keypath, _parse_scalar(v))


def _parse_set_item(item: str) -> tuple[list[str], Any]:
    """Parse a single --set "key.path=value" string.

    - Uses first '=' as separator.
    - Key path split by '.' into a list.
    - Value parsed via YAML safe_load for rich types; falls back to scalar parsing.
    """
    if "=" not in item:
        raise ConfigError(f"Invalid --set override (missing '='): {item!r}")
    key, raw = item.split("=", 1)
    path = [p for p in key.strip().split(".") if p]
    if not path:
        raise ConfigError(f"Invalid --set override (empty key path): {item!r}")
    try:
        value = yaml.safe_load(raw)
    except yaml.YAMLError:
        value = _parse_scalar(raw)
    return path, value


def parse_set_overrides(sets: list[str] | None) -> dict[str, Any]:
    """Convert a list of --set items into a nested dict suitable for deep merging."""
    result: dict[str, Any] = {}
    if not sets:
        return result
    for item in sets:
        path, value = _parse_set_item(item)
        _set_by_path(result, path, value)
    return result


def _deep_merge(dst: dict, src: dict) -> dict:
    for k, v in src.items():
        if isinstance(v, dict) and isinstance(dst.get(k), dict):
            _deep_merge(dst[k], v)
        else:
            dst[k] = v
    return dst


def _read_yaml(path: str | None) -> dict:
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        return {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level")
    return data


def load_config(
    path: str | None = None,
    *,
    env: Mapping[str, str] | None = None,
    overrides: dict[str, Any] | None = None,
    set_overrides: list[str] | None = None,
) -> DocExportConfig:
    """Load config from YAML with env, dict and --set overrides (lowest to highest).

    A missing file is not an error: defaults plus overrides still form a config.
    """
    data = _read_yaml(path)

    if env is None:
        env = os.environ
    _apply_env_overrides(data, env)

    if overrides:
        _deep_merge(data, overrides)

    if set_overrides:
        _deep_merge(data, parse_set_overrides(set_overrides))

    try:
        return DocExportConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def validate_for_export(cfg: DocExportConfig) -> None:
    """Fail fast on missing identifiers before any I/O starts."""
    if not cfg.export.collection:
        raise ConfigError(
            "Collection name is required. Set export.collection or DOCEXPORT_EXPORT__COLLECTION."
        )
    if not cfg.s3.bucket:
        raise ConfigError("S3 bucket is required. Set s3.bucket or DOCEXPORT_S3__BUCKET.")
    if not cfg.mongo.database:
        raise ConfigError("Mongo database is required. Set mongo.database.")


__all__ = [
    "ENV_PREFIX",
    "load_config",
    "parse_set_overrides",
    "validate_for_export",
]
