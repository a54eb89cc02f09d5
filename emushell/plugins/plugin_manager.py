"""Core discovery — lists the installed native cores and resolves display metadata."""

from __future__ import annotations

import re
from pathlib import Path
from typing import IO

from loguru import logger

from emushell.errors import DescriptorParseError, DiscoveryError, PluginConstructionError
from emushell.models.plugin import DiscoveryResult, PluginDescriptor
from emushell.plugins.cpu_features import CpuFeatures
from emushell.plugins.descriptor_table import (
    DescriptorTable,
    core_id_from_filename,
    strip_core_prefix,
)

DEFAULT_RESERVED_PREFIX = "libretroarch"
DEFAULT_CAPABILITY = "neon"


class PluginDiscovery:
    """
    Scans one directory level for installed cores.

    The host's own runtime binaries (names starting with the reserved
    prefix) are never offered.  Everything else becomes a
    :class:`PluginDescriptor`, in the order the OS lists the directory.

    Usage::

        discovery = PluginDiscovery(cpu_features=CpuFeatures.detect())
        with open(table_path, "rb") as stream:
            result = discovery.discover(native_lib_dir, stream)
        for core in result:
            print(core.display_name, core.file_path)
    """

    def __init__(
        self,
        reserved_prefix: str = DEFAULT_RESERVED_PREFIX,
        cpu_features: CpuFeatures | None = None,
        capability: str = DEFAULT_CAPABILITY,
        hide_unsupported_variants: bool = False,
    ) -> None:
        self._reserved_prefix = reserved_prefix
        self._cpu = cpu_features or CpuFeatures()
        self._capability = capability
        self._hide_unsupported = hide_unsupported_variants

    # ── Descriptor table ──

    @staticmethod
    def load_descriptor_table(
        stream: IO[bytes] | bytes | None, source: str | Path | None = None
    ) -> DescriptorTable:
        """Parse the descriptor table; raises DescriptorParseError on bad input."""
        table = DescriptorTable()
        if stream is None:
            return table
        if isinstance(stream, bytes):
            table.append_bytes(stream, source)
        else:
            table.append_stream(stream, source)
        return table

    # ── Discovery ──

    def discover(
        self,
        plugin_dir: Path,
        descriptor_stream: IO[bytes] | bytes | None = None,
        source: str | Path | None = None,
    ) -> DiscoveryResult:
        """
        Build the ordered core list for *plugin_dir*.

        Raises DiscoveryError if the directory cannot be listed.  Any other
        problem (bad descriptor table, unreadable entry) is logged, recorded
        on the result and skipped.
        """
        result = DiscoveryResult()

        try:
            table = self.load_descriptor_table(descriptor_stream, source)
            result.table_loaded = descriptor_stream is not None
        except DescriptorParseError as e:
            logger.warning(f"Descriptor table unusable, falling back to file names: {e}")
            result.errors.append(e)
            table = DescriptorTable()

        try:
            entries = list(plugin_dir.iterdir())
        except OSError as e:
            raise DiscoveryError(f"Cannot list core directory ({e})", path=plugin_dir) from e

        for entry in entries:
            name = entry.name
            logger.debug(f"Core candidate: {name}")

            if name.startswith(self._reserved_prefix):
                continue
            if entry.is_dir():
                logger.debug(f"Skipping directory in core dir: {name}")
                continue

            try:
                descriptor = self._build_descriptor(entry, table)
            except PluginConstructionError as e:
                logger.warning(f"Skipping core '{name}': {e}")
                result.errors.append(e)
                continue

            if self._hide_unsupported and not descriptor.supports_capability:
                logger.info(
                    f"Hiding '{name}': host CPU lacks '{self._capability}'"
                )
                continue
            result.descriptors.append(descriptor)

        logger.info(
            f"Discovered {len(result.descriptors)} core(s) in {plugin_dir}"
            + (f" ({len(result.errors)} problem(s))" if result.errors else "")
        )
        return result

    def discover_or_empty(
        self,
        plugin_dir: Path,
        descriptor_stream: IO[bytes] | bytes | None = None,
        source: str | Path | None = None,
    ) -> DiscoveryResult:
        """Like :meth:`discover`, but a fatal error becomes an empty result."""
        try:
            return self.discover(plugin_dir, descriptor_stream, source)
        except DiscoveryError as e:
            logger.error(str(e))
            return DiscoveryResult(errors=[e])

    # ── Helpers ──

    def _build_descriptor(self, path: Path, table: DescriptorTable) -> PluginDescriptor:
        try:
            # Dangling symlinks and vanished files fail here
            path.stat()
            file_path = path.absolute()
        except OSError as e:
            raise PluginConstructionError(f"Cannot stat core ({e})", path=path) from e

        core_id = core_id_from_filename(path.name)
        if not core_id:
            raise PluginConstructionError("Empty core identifier", path=path)

        entry = table.get(core_id)
        return PluginDescriptor(
            file_path=file_path,
            display_name=entry.display_name if entry else strip_core_prefix(core_id),
            supports_capability=self._supports_capability(core_id),
            core_id=core_id,
            library_name=entry.library_name if entry else "",
            notes=entry.notes if entry else "",
        )

    def _supports_capability(self, core_id: str) -> bool:
        """Variant builds tagged with the capability need it on the host."""
        tokens = re.split(r"[_\-]", core_id.lower())
        if self._capability.lower() in tokens:
            return self._cpu.has_feature(self._capability)
        return True
