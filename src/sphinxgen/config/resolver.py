"""Configuration resolution helpers."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Dict, Mapping

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import SphinxgenConfig

ENV_PREFIX = "SPHINXGEN__"
ENVIRONMENT_VARIABLE = "SPHINXGEN_ENV"


def resolve_with_precedence(
    *,
    defaults: SphinxgenConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> SphinxgenConfig:
    """Merge configuration layers; later layers win over earlier ones.

    Args:
        defaults: Baseline configuration.
        file_overrides: Values read from ``config/sphinx.yaml``.
        env_overrides: Nested values extracted from the process environment.
        cli_overrides: Values supplied on the command line (dotted keys allowed).

    Returns:
        SphinxgenConfig: Validated configuration.

    Raises:
        ConfigError: If a layer is malformed or the merged values are invalid.
    """
    merged = defaults.model_dump(mode="json")
    layers = (("file", file_overrides), ("environment", env_overrides), ("cli", cli_overrides))
    for name, layer in layers:
        if layer is None:
            continue
        merged = _deep_merge(merged, _expand_dotted(layer, source_name=name))

    try:
        return SphinxgenConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def environment_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    """Extract ``SPHINXGEN__SECTION__KEY`` variables into a nested mapping.

    ``SPHINXGEN_ENV`` selects the active environment and is applied first so an
    explicit ``SPHINXGEN__ENVIRONMENT`` still wins.
    """
    overrides: dict[str, Any] = {}
    if env.get(ENVIRONMENT_VARIABLE):
        overrides["environment"] = env[ENVIRONMENT_VARIABLE]

    for key in sorted(env):
        if not key.startswith(ENV_PREFIX):
            continue
        segments = [segment.lower() for segment in key[len(ENV_PREFIX) :].split("__") if segment]
        if not segments:
            continue
        try:
            value = yaml.safe_load(env[key])
        except yaml.YAMLError:
            value = env[key]
        node = overrides
        for segment in segments[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = {}
                node[segment] = child
            node = child
        node[segments[-1]] = value
    return overrides


def flatten_for_env(config: SphinxgenConfig) -> Dict[str, str]:
    """Flatten the config into ``SPHINXGEN__SECTION__KEY`` variable mappings."""
    flat: Dict[str, str] = {}

    def _walk(path: list[str], value: Any) -> None:
        if isinstance(value, dict):
            for key, child in value.items():
                _walk([*path, str(key)], child)
            return
        env_key = ENV_PREFIX + "__".join(part.upper() for part in path)
        if isinstance(value, list):
            flat[env_key] = yaml.safe_dump(value, default_flow_style=True).strip()
        elif value is None:
            flat[env_key] = "null"
        elif isinstance(value, bool):
            flat[env_key] = "true" if value else "false"
        else:
            flat[env_key] = str(value)

    _walk([], config.model_dump(mode="json"))
    return flat


def _expand_dotted(source: Mapping[str, Any], *, source_name: str) -> dict[str, Any]:
    if not isinstance(source, MappingABC):
        raise ConfigError(f"{source_name.capitalize()} overrides must be a mapping.")

    expanded: dict[str, Any] = {}
    for key, value in source.items():
        if not isinstance(key, str):
            raise ConfigError(f"{source_name.capitalize()} override keys must be strings.")
        if isinstance(value, MappingABC):
            value = _expand_dotted(value, source_name=source_name)
        node = expanded
        path = key.split(".")
        for segment in path[:-1]:
            child = node.setdefault(segment, {})
            if not isinstance(child, dict):
                raise ConfigError(
                    f"{source_name.capitalize()} override for {key} conflicts with existing value."
                )
            node = child
        leaf = path[-1]
        if isinstance(value, dict) and isinstance(node.get(leaf), dict):
            node[leaf] = _deep_merge(node[leaf], value)
        else:
            node[leaf] = value
    return expanded


def _deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = {key: deepcopy(value) for key, value in base.items()}
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(value, MappingABC) and isinstance(current, MappingABC):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


__all__ = [
    "ENV_PREFIX",
    "ENVIRONMENT_VARIABLE",
    "environment_overrides",
    "flatten_for_env",
    "resolve_with_precedence",
]
