"""Core (native plugin) models."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

from emushell.errors import EmuShellError


@dataclass(frozen=True)
class DescriptorEntry:
    """Metadata for one known core, as listed in the descriptor table."""

    core_id: str
    display_name: str
    library_name: str = ""
    notes: str = ""


@dataclass(frozen=True)
class PluginDescriptor:
    """One installed core found on disk. Rebuilt on every discovery pass."""

    file_path: Path
    display_name: str
    supports_capability: bool = True
    core_id: str = ""
    library_name: str = ""
    notes: str = ""

    @property
    def file_name(self) -> str:
        return self.file_path.name


@dataclass(frozen=True)
class ActiveCore:
    """The core the user picked: absolute path + display name."""

    path: str
    name: str

    @property
    def is_set(self) -> bool:
        return bool(self.path)


@dataclass
class DiscoveryResult:
    """Ordered descriptors plus the non-fatal errors hit while building them."""

    descriptors: list[PluginDescriptor] = field(default_factory=list)
    errors: list[EmuShellError] = field(default_factory=list)
    table_loaded: bool = False

    def __iter__(self) -> Iterator[PluginDescriptor]:
        return iter(self.descriptors)

    def __len__(self) -> int:
        return len(self.descriptors)
