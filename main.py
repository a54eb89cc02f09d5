"""Application entry point — wires services, syncs assets and lists installed cores."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from emushell.config import Config, get_config
from emushell.context import AppContext
from emushell.core.asset_sync import AssetSync, AssetSyncWorker
from emushell.core.bundle import open_bundle
from emushell.logger import setup_logger
from emushell.models.plugin import DiscoveryResult
from emushell.plugins.cpu_features import CpuFeatures
from emushell.plugins.descriptor_table import DEFAULT_TABLE_PATH
from emushell.plugins.plugin_manager import PluginDiscovery
from emushell.plugins.selection import ConfigSelectionStore


def create_context(config: Config | None = None) -> AppContext:
    """Wire all services and return an AppContext."""
    config = config or get_config()

    discovery = PluginDiscovery(
        reserved_prefix=config.reserved_prefix,
        cpu_features=CpuFeatures.detect(),
        capability=config.capability,
        hide_unsupported_variants=config.hide_unsupported_variants,
    )
    selection = ConfigSelectionStore(config)

    asset_sync = None
    bundle_path = config.asset_bundle
    if bundle_path is not None:
        asset_sync = AssetSync(
            bundle=open_bundle(bundle_path, config.asset_bundle_prefix),
            data_dir=config.data_dir,
            version=config.software_version,
            groups=config.asset_groups,
            stamp_file=config.stamp_file,
            advance_stamp_on_group_failure=config.advance_stamp_on_group_failure,
        )
    else:
        logger.info("No asset bundle configured, asset sync disabled")

    return AppContext(
        config=config,
        discovery=discovery,
        selection=selection,
        asset_sync=asset_sync,
    )


def list_cores(ctx: AppContext) -> DiscoveryResult:
    """Run discovery against the configured core directory."""
    plugin_dir = ctx.config.plugin_dir
    if plugin_dir is None:
        logger.warning("No core directory configured")
        return DiscoveryResult()

    table_path: Path = ctx.config.descriptor_table or DEFAULT_TABLE_PATH
    try:
        table_bytes: bytes | None = table_path.read_bytes()
    except OSError as e:
        logger.error(f"Failed to load {table_path.name}: {e}")
        table_bytes = None

    return ctx.discovery.discover_or_empty(plugin_dir, table_bytes, table_path)


def main() -> int:
    """Application entry point."""
    config = get_config()
    setup_logger(config.data_dir / "logs")

    ctx = create_context(config)

    # Extraction can take a while, keep it off the main thread
    worker = None
    if ctx.asset_sync is not None:
        worker = AssetSyncWorker(ctx.asset_sync)
        worker.start()

    result = list_cores(ctx)
    for index, core in enumerate(result, start=1):
        marker = "" if core.supports_capability else " (unsupported CPU)"
        logger.info(f"{index:>3}. {core.display_name}{marker} ({core.file_name})")

    active = ctx.selection.active_core
    if active.is_set:
        logger.info(f"Active core: {active.name}")

    if worker is not None:
        worker.wait()
    ctx.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
