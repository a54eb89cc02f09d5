"""Application configuration — JSON-based, with atomic saves and batch update support."""

from __future__ import annotations

import json
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from loguru import logger

from emushell.models.asset import AssetGroup
from emushell.models.plugin import ActiveCore

_instance: "Config | None" = None

# Default data directory
_DEFAULT_DATA_DIR = Path.home() / ".local" / "share" / "emushell"


def get_config() -> Config:
    """Module-level factory — single global Config instance."""
    global _instance
    if _instance is None:
        _instance = Config()
    return _instance


def reset_config() -> None:
    """Reset the global config instance (for testing)."""
    global _instance
    _instance = None


class Config:
    """JSON-based application configuration; saves are serialized by a thread lock."""

    _DEFAULTS: dict[str, Any] = {
        # Installed native cores
        "plugin_dir": "",
        "reserved_prefix": "libretroarch",
        "descriptor_table": "",
        "capability": "neon",
        "hide_unsupported_variants": False,
        # Bundled assets
        "asset_bundle": "",
        "asset_bundle_prefix": "assets",
        "asset_groups": ["shaders", "overlays"],
        "stamp_file": ".cacheversion",
        "advance_stamp_on_group_failure": True,
        "software_version": 0,
        # Selection
        "active_core": {"path": "", "name": ""},
    }

    def __init__(self, data_dir: Path | None = None) -> None:
        self._data: dict[str, Any] = {}
        self._dir = data_dir or _DEFAULT_DATA_DIR
        self._path = self._dir / "config.json"
        self._lock = threading.Lock()
        self._defer_save = False
        self._load()

    def _load(self) -> None:
        """Load config from disk, merging with defaults."""
        self._data = json.loads(json.dumps(self._DEFAULTS))  # deep copy defaults
        if self._path.exists():
            try:
                with open(self._path, encoding="utf-8") as f:
                    user_data = json.load(f)
                self._deep_merge(self._data, user_data)
            except (json.JSONDecodeError, OSError) as e:
                logger.warning(f"Failed to load config, using defaults: {e}")

    def _deep_merge(self, base: dict, override: dict) -> None:
        """Recursively merge override into base."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _save(self) -> None:
        """Persist config to disk via a temp file and atomic replace."""
        if self._defer_save:
            return
        with self._lock:
            self._dir.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(".tmp")
            try:
                with open(tmp_path, "w", encoding="utf-8") as f:
                    json.dump(self._data, f, ensure_ascii=False, indent=2)
                tmp_path.replace(self._path)
            except OSError as e:
                logger.error(f"Failed to save config: {e}")
                if tmp_path.exists():
                    tmp_path.unlink(missing_ok=True)

    @contextmanager
    def batch_update(self) -> Iterator[None]:
        """Context manager for batching multiple config changes into a single write."""
        self._defer_save = True
        try:
            yield
        finally:
            self._defer_save = False
            self._save()

    # ── Generic access ──

    def get(self, key: str, default: Any = None) -> Any:
        """Get a config value by dot-separated key path."""
        parts = key.split(".")
        node = self._data
        for part in parts:
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return default
        return node

    def set(self, key: str, value: Any) -> None:
        """Set a config value by dot-separated key path."""
        parts = key.split(".")
        node = self._data
        for part in parts[:-1]:
            if part not in node or not isinstance(node[part], dict):
                node[part] = {}
            node = node[part]
        node[parts[-1]] = value
        self._save()

    # ── Typed properties ──

    @property
    def data_dir(self) -> Path:
        return self._dir

    @property
    def plugin_dir(self) -> Path | None:
        raw = self._data.get("plugin_dir", "")
        return Path(raw) if raw else None

    @plugin_dir.setter
    def plugin_dir(self, value: Path | None) -> None:
        self.set("plugin_dir", str(value) if value else "")

    @property
    def reserved_prefix(self) -> str:
        return self._data.get("reserved_prefix", "libretroarch")

    @property
    def descriptor_table(self) -> Path | None:
        """Custom descriptor table; None means the bundled default."""
        raw = self._data.get("descriptor_table", "")
        return Path(raw) if raw else None

    @property
    def capability(self) -> str:
        return self._data.get("capability", "neon")

    @property
    def hide_unsupported_variants(self) -> bool:
        return bool(self._data.get("hide_unsupported_variants", False))

    @property
    def asset_bundle(self) -> Path | None:
        raw = self._data.get("asset_bundle", "")
        return Path(raw) if raw else None

    @asset_bundle.setter
    def asset_bundle(self, value: Path | None) -> None:
        self.set("asset_bundle", str(value) if value else "")

    @property
    def asset_bundle_prefix(self) -> str:
        return self._data.get("asset_bundle_prefix", "assets")

    @property
    def asset_groups(self) -> list[AssetGroup]:
        """Groups as plain names or ``{"name", "source", "target"}`` objects."""
        groups: list[AssetGroup] = []
        for item in self._data.get("asset_groups", []):
            if isinstance(item, str):
                groups.append(AssetGroup(item))
            elif isinstance(item, dict) and item.get("name"):
                groups.append(
                    AssetGroup(
                        name=item["name"],
                        source=item.get("source", ""),
                        target=item.get("target", ""),
                    )
                )
            else:
                logger.warning(f"Ignoring malformed asset group entry: {item!r}")
        return groups

    @property
    def stamp_file(self) -> str:
        return self._data.get("stamp_file", ".cacheversion")

    @property
    def advance_stamp_on_group_failure(self) -> bool:
        return bool(self._data.get("advance_stamp_on_group_failure", True))

    @property
    def software_version(self) -> int:
        raw = self._data.get("software_version", 0)
        try:
            return int(raw)
        except (TypeError, ValueError):
            logger.warning(f"Invalid software_version {raw!r}, using 0")
            return 0

    @software_version.setter
    def software_version(self, value: int) -> None:
        self.set("software_version", int(value))

    @property
    def active_core(self) -> ActiveCore:
        raw = self._data.get("active_core", {})
        return ActiveCore(path=raw.get("path", ""), name=raw.get("name", ""))
