"""Error taxonomy for core discovery and asset sync.

Only ``DiscoveryError`` is allowed to escape a public operation; every other
error is caught at the smallest unit (one plugin entry, one asset group, the
stamp file) and recorded on the result object.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

__all__ = [
    "EmuShellError",
    "DiscoveryError",
    "DescriptorParseError",
    "PluginConstructionError",
    "StampReadError",
    "GroupExtractionError",
    "StampWriteError",
]


class EmuShellError(Exception):
    """Base exception carrying an optional filesystem path for context."""

    def __init__(self, message: str, *, path: str | Path | None = None) -> None:
        self.message = message
        self.path = str(path) if path is not None else None
        super().__init__(f"{message}: {self.path}" if self.path else message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "path": self.path,
        }


class DiscoveryError(EmuShellError):
    """The core directory does not exist or cannot be listed."""


class DescriptorParseError(EmuShellError):
    """The descriptor table could not be read or parsed."""

    def __init__(
        self, message: str, *, path: str | Path | None = None, line: int | None = None
    ) -> None:
        self.line = line
        if line is not None:
            message = f"{message} (line {line})"
        super().__init__(message, path=path)


class PluginConstructionError(EmuShellError):
    """A single core entry could not be turned into a descriptor."""


class StampReadError(EmuShellError):
    """The cache version stamp is missing, truncated or unreadable."""


class GroupExtractionError(EmuShellError):
    """Extraction of one asset group failed part-way."""

    def __init__(self, message: str, *, group: str, path: str | Path | None = None) -> None:
        self.group = group
        super().__init__(f"[{group}] {message}", path=path)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["group"] = self.group
        return data


class StampWriteError(EmuShellError):
    """The cache version stamp could not be written."""
