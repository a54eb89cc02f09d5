"""Cache version stamp — the last software version whose assets were extracted.

Stored as a 4-byte big-endian signed integer, the same layout Java's
``DataOutputStream.writeInt`` produces, so stamps written by older builds
remain readable.
"""

from __future__ import annotations

import struct
from pathlib import Path

from loguru import logger

from emushell.errors import StampReadError, StampWriteError

STAMP_FILE_NAME = ".cacheversion"

_STAMP_FORMAT = ">i"
_STAMP_SIZE = struct.calcsize(_STAMP_FORMAT)


class VersionStamp:
    """Reads and writes the stamp file inside the writable data directory."""

    def __init__(self, data_dir: Path, file_name: str = STAMP_FILE_NAME) -> None:
        self._path = data_dir / file_name

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> int:
        """Return the stored version; raises StampReadError on any problem."""
        try:
            with open(self._path, "rb") as f:
                data = f.read(_STAMP_SIZE + 1)
        except OSError as e:
            raise StampReadError(f"Cannot read stamp ({e})", path=self._path) from e
        if len(data) != _STAMP_SIZE:
            raise StampReadError(
                f"Corrupt stamp: expected {_STAMP_SIZE} bytes, got {len(data)}",
                path=self._path,
            )
        return struct.unpack(_STAMP_FORMAT, data)[0]

    def load(self) -> int | None:
        """Return the stored version, or None when it cannot be trusted."""
        try:
            return self.read()
        except StampReadError as e:
            if self._path.exists():
                logger.warning(f"Ignoring unusable cache stamp: {e}")
            else:
                logger.debug(f"No cache stamp yet: {self._path}")
            return None

    def write(self, version: int) -> None:
        """Overwrite the stamp; raises StampWriteError on failure."""
        try:
            payload = struct.pack(_STAMP_FORMAT, version)
        except struct.error as e:
            raise StampWriteError(f"Version {version} does not fit in the stamp ({e})", path=self._path) from e

        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "wb") as f:
                f.write(payload)
            tmp_path.replace(self._path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise StampWriteError(f"Cannot write stamp ({e})", path=self._path) from e
