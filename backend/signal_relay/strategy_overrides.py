"""
Per-strategy order parameter overrides.

Overrides are resolved once at startup into a closed, read-only mapping
and merged into every order built for a signal naming that strategy.

Sources, later wins:
- Settings.strategy_params (STRATEGY_PARAMS JSON blob)
- STRATEGY_<NAME>_PARAMS JSON variables from .env and the process environment
"""

import json
import logging
import os
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional

from dotenv import dotenv_values

from signal_relay.config import Settings

logger = logging.getLogger(__name__)

_ENV_PATTERN = re.compile(r"^STRATEGY_(?P<name>.+)_PARAMS$", re.IGNORECASE)

# Computed per attempt; an override can never replace it
_RESERVED_KEYS = frozenset({"signature"})
# Must stay present and non-empty after merging
_REQUIRED_KEYS = frozenset({"symbol", "side", "type", "quantity", "timestamp", "recvWindow"})


def _normalize_name(name: str) -> str:
    return name.strip().upper()


def _check_params(name: str, params: Any) -> Dict[str, Any]:
    if not isinstance(params, dict):
        raise ValueError(f"Strategy {name} params must be a JSON object, got {type(params).__name__}")
    for key, value in params.items():
        if key in _RESERVED_KEYS:
            raise ValueError(f"Strategy {name} may not override '{key}'")
        if value is None or isinstance(value, (dict, list)):
            raise ValueError(f"Strategy {name} param '{key}' must be a scalar value")
        if key in _REQUIRED_KEYS and str(value).strip() == "":
            raise ValueError(f"Strategy {name} may not blank required param '{key}'")
    return dict(params)


@dataclass(frozen=True)
class StrategyOverride:
    name: str
    params: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))


class StrategyOverrides(Mapping):
    """Closed mapping of strategy name (case-insensitive) to StrategyOverride."""

    def __init__(self, overrides: Optional[Mapping[str, Mapping[str, Any]]] = None):
        resolved = {}
        for name, params in (overrides or {}).items():
            key = _normalize_name(name)
            resolved[key] = StrategyOverride(key, _check_params(key, params))
        self._overrides = MappingProxyType(resolved)

    def __getitem__(self, name: str) -> StrategyOverride:
        return self._overrides[_normalize_name(name)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._overrides)

    def __len__(self) -> int:
        return len(self._overrides)

    def resolve(self, strategy: Optional[str]) -> Optional[StrategyOverride]:
        """Override for a signal's strategy, or None when absent/unknown."""
        if not strategy:
            return None
        return self._overrides.get(_normalize_name(strategy))


def _from_environ(environ: Mapping[str, Optional[str]]) -> Dict[str, Dict[str, Any]]:
    found = {}
    for var, raw in environ.items():
        match = _ENV_PATTERN.match(var)
        if not match or raw is None or not raw.strip():
            continue
        name = match.group("name")
        try:
            found[name] = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"{var} is not valid JSON: {e}") from e
    return found


def load_strategy_overrides(
    settings: Settings,
    environ: Optional[Mapping[str, Optional[str]]] = None,
    env_file: Optional[str] = ".env",
) -> StrategyOverrides:
    """Resolve all strategy overrides from settings, .env and the environment.

    Raises ValueError on malformed JSON or forbidden override keys so a bad
    configuration stops startup instead of failing individual trades.
    """
    merged: Dict[str, Dict[str, Any]] = {}
    for name, params in settings.strategy_params.items():
        merged[_normalize_name(name)] = params

    sources = []
    if env_file and os.path.exists(env_file):
        sources.append(dotenv_values(env_file))
    sources.append(os.environ if environ is None else environ)

    for source in sources:
        for name, params in _from_environ(source).items():
            merged[_normalize_name(name)] = params

    overrides = StrategyOverrides(merged)
    if overrides:
        logger.info(f"Loaded strategy overrides for: {', '.join(sorted(overrides))}")
    return overrides
