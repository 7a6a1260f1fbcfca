"""Configuration for building snapshot-backed pools.

Settings come from three layers, later ones winning: dataclass defaults, the
``[tool.snapcache]`` table of ``pyproject.toml`` and the ``SNAPCACHE``
environment variable.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Mapping

from .pools.memory import MemoryPool, TelemetryCallback, default_size_estimator
from .utils.config_helpers import coerce_bool, read_pyproject_section, split_csv
from .utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENV_VAR = "SNAPCACHE"


@dataclass
class SnapcacheConfig:
    """Configuration settings for the snapshot adapter and its fallback pool.

    Parameters
    ----------
    snapshot_path : str | None
        Snapshot module to serve warmed keys from. Default: None (pool only).
    accelerate : bool | None
        Force the snapshot tier on or off. Default: None (detect from the
        interpreter's bytecode cache setting).
    namespace : str
        Namespace of the fallback pool's keys. Default: "snapcache".
    max_items : int
        Maximum number of fallback entries. Default: 512.
    max_bytes : int | None
        Memory budget of the fallback pool in bytes. Default: 32 MB.
    ttl_seconds : float | None
        Time-to-live of fallback entries. Default: None (no expiry).
    telemetry : TelemetryCallback | None
        Optional callback for fallback pool events. Default: None.
    """

    snapshot_path: str | None = None
    accelerate: bool | None = None
    namespace: str = "snapcache"
    max_items: int = 512
    max_bytes: int | None = 32 * 1024 * 1024
    ttl_seconds: float | None = None
    telemetry: TelemetryCallback | None = None
    size_estimator: Callable[[Any], int] = default_size_estimator

    @classmethod
    def from_env(cls, base: "SnapcacheConfig | None" = None) -> "SnapcacheConfig":
        """Merge ``SNAPCACHE`` overrides with ``base`` defaults.

        The variable holds comma-separated tokens: ``on``/``off`` toggle the
        snapshot tier, and ``path=``, ``namespace=``, ``max_items=``,
        ``max_bytes=`` and ``ttl=`` set the matching fields.
        """
        cfg = replace(base) if base is not None else cls()
        for token in split_csv(os.getenv(ENV_VAR)):
            name, sep, value = token.partition("=")
            if not sep:
                toggle = coerce_bool(token)
                if toggle is None:
                    raise ConfigurationError(
                        f"Unknown {ENV_VAR} token {token!r}",
                        details={"token": token, "variable": ENV_VAR},
                    )
                cfg.accelerate = toggle
                continue
            cfg._apply(name.strip(), value.strip(), source=ENV_VAR)
        return cfg

    @classmethod
    def from_pyproject(
        cls, base: "SnapcacheConfig | None" = None, *, root: Path | None = None
    ) -> "SnapcacheConfig":
        """Merge ``[tool.snapcache]`` settings with ``base`` defaults."""
        cfg = replace(base) if base is not None else cls()
        section: Mapping[str, Any] = read_pyproject_section(("tool", "snapcache"), root=root)
        for name, value in section.items():
            if name == "accelerate":
                cfg.accelerate = coerce_bool(value)
                continue
            cfg._apply(name, str(value), source="pyproject.toml")
        return cfg

    @classmethod
    def resolve(cls, *, root: Path | None = None) -> "SnapcacheConfig":
        """Return defaults overlaid with pyproject then environment settings."""
        return cls.from_env(cls.from_pyproject(root=root))

    def make_pool(self) -> MemoryPool:
        """Build the fallback pool described by this configuration."""
        return MemoryPool(
            namespace=self.namespace,
            max_items=self.max_items,
            max_bytes=self.max_bytes,
            ttl_seconds=self.ttl_seconds,
            telemetry=self.telemetry,
            size_estimator=self.size_estimator,
        )

    def _apply(self, name: str, value: str, *, source: str) -> None:
        try:
            if name in ("path", "snapshot_path"):
                self.snapshot_path = value or None
            elif name == "namespace":
                self.namespace = value
            elif name == "max_items":
                self.max_items = max(1, int(value))
            elif name == "max_bytes":
                self.max_bytes = max(1, int(value))
            elif name in ("ttl", "ttl_seconds"):
                self.ttl_seconds = float(value) if float(value) > 0 else None
            else:
                logger.debug("Ignoring unknown %s setting %r", source, name)
        except ValueError as exc:
            raise ConfigurationError(
                f"Invalid {source} value for {name}: {value!r}",
                details={"setting": name, "value": value, "source": source},
            ) from exc


__all__ = ["ENV_VAR", "SnapcacheConfig"]
