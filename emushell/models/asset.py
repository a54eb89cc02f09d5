"""Asset bundle and sync models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from emushell.errors import EmuShellError


class NodeKind(StrEnum):
    """Kind of a node in the bundled resource tree."""

    DIRECTORY = "directory"
    FILE = "file"


@dataclass(frozen=True)
class AssetNode:
    """A node of the bundled tree, addressed by its ``/``-separated relative path."""

    path: str
    kind: NodeKind

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    @property
    def is_dir(self) -> bool:
        return self.kind is NodeKind.DIRECTORY


@dataclass(frozen=True)
class AssetGroup:
    """
    A named top-level resource tree extracted as one failure-isolated unit.

    ``source`` is relative to the bundle root, ``target`` relative to the
    writable data directory. Both default to the group name.
    """

    name: str
    source: str = ""
    target: str = ""

    @property
    def source_path(self) -> str:
        return (self.source or self.name).strip("/")

    @property
    def target_path(self) -> str:
        return (self.target or self.name).strip("/")


class SyncOutcome(StrEnum):
    """Terminal state of one asset sync run."""

    SKIPPED = "skipped"
    EXTRACTED = "extracted"


@dataclass
class SyncResult:
    """Result of one asset sync run."""

    outcome: SyncOutcome
    current_version: int
    previous_version: int | None = None
    extracted_groups: list[str] = field(default_factory=list)
    failed_groups: list[str] = field(default_factory=list)
    files_written: int = 0
    stamp_written: bool = False
    errors: list[EmuShellError] = field(default_factory=list)
