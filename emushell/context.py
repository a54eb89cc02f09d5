"""Application context — service container for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from emushell.config import Config
    from emushell.core.asset_sync import AssetSync
    from emushell.plugins.plugin_manager import PluginDiscovery
    from emushell.plugins.selection import ConfigSelectionStore


@dataclass
class AppContext:
    """
    Central service container.

    Discovery and asset sync share nothing but the data directory, so they
    are wired independently; ``asset_sync`` is None when no bundle is
    configured.
    """

    config: Config
    discovery: PluginDiscovery
    selection: ConfigSelectionStore
    asset_sync: AssetSync | None = None

    def close(self) -> None:
        """Release resources held by the wired services."""
        if self.asset_sync is not None:
            self.asset_sync.close()
