"""Descriptor table — maps core identifiers to display metadata.

Line-oriented ``key = value`` format::

    # comment
    snes9x = "SNES / Super Famicom (SNES9x)"
    snes9x_library = "libretro_snes9x.so"
    snes9x_notes = "Accurate, slow on older devices"
    libretro_fceumm_name = "NES / Famicom (FCEUmm)"

A core id may be given as the bare key or with a ``_name`` suffix.  Unknown
keys are kept in :attr:`DescriptorTable.raw` but otherwise ignored.
"""

from __future__ import annotations

from pathlib import Path
from typing import IO

from loguru import logger

from emushell.errors import DescriptorParseError
from emushell.models.plugin import DescriptorEntry

# Bundled default table
DEFAULT_TABLE_PATH = Path(__file__).resolve().parent.parent / "data" / "libretro_cores.cfg"

_NAME_SUFFIX = "_name"
_LIBRARY_SUFFIX = "_library"
_NOTES_SUFFIX = "_notes"

# Prefixes stripped from a filename stem to get the bare core id, longest first
_CORE_PREFIXES = ("libretro_", "libretro-", "retro_", "lib")


def core_id_from_filename(filename: str) -> str:
    """``libretro_snes9x.so`` → ``libretro_snes9x`` (all extensions stripped)."""
    return filename.split(".", 1)[0]


def strip_core_prefix(core_id: str) -> str:
    """``libretro_snes9x`` → ``snes9x``; ids without a known prefix pass through."""
    for prefix in _CORE_PREFIXES:
        if core_id.startswith(prefix) and len(core_id) > len(prefix):
            return core_id[len(prefix):]
    return core_id


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value


class DescriptorTable:
    """Read-only lookup built from one or more ``key = value`` sources."""

    def __init__(self) -> None:
        self._raw: dict[str, str] = {}

    # ── Loading ──

    @classmethod
    def from_bytes(cls, data: bytes, source: str | Path | None = None) -> DescriptorTable:
        table = cls()
        table.append_bytes(data, source)
        return table

    @classmethod
    def from_path(cls, path: Path) -> DescriptorTable:
        try:
            data = path.read_bytes()
        except OSError as e:
            raise DescriptorParseError(f"Cannot read descriptor table ({e})", path=path) from e
        return cls.from_bytes(data, path)

    def append_stream(self, stream: IO[bytes], source: str | Path | None = None) -> None:
        """Merge entries from a byte stream; later keys override earlier ones."""
        try:
            data = stream.read()
        except OSError as e:
            raise DescriptorParseError(f"Cannot read descriptor table ({e})", path=source) from e
        self.append_bytes(data, source)

    def append_bytes(self, data: bytes, source: str | Path | None = None) -> None:
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise DescriptorParseError("Descriptor table is not valid UTF-8", path=source) from e

        parsed: dict[str, str] = {}
        for lineno, raw_line in enumerate(text.splitlines(), start=1):
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            key, sep, value = line.partition("=")
            key = key.strip()
            if not sep or not key:
                raise DescriptorParseError(
                    "Expected 'key = value'", path=source, line=lineno
                )
            parsed[key] = _unquote(value.strip())

        # Only merge once the whole source parsed cleanly
        self._raw.update(parsed)
        logger.debug(f"Descriptor table: {len(parsed)} key(s) from {source or '<stream>'}")

    # ── Queries ──

    @property
    def raw(self) -> dict[str, str]:
        return dict(self._raw)

    def __len__(self) -> int:
        return len(self._raw)

    def _display_name(self, key: str) -> str | None:
        return self._raw.get(key + _NAME_SUFFIX) or self._raw.get(key)

    def get(self, core_id: str) -> DescriptorEntry | None:
        """
        Look up a core by id.

        Tries the id as given, then with its ``lib``/``libretro_`` prefix
        stripped, so both ``libretro_snes9x`` and ``snes9x`` keys match.
        """
        candidates = [core_id]
        bare = strip_core_prefix(core_id)
        if bare != core_id:
            candidates.append(bare)

        for key in candidates:
            name = self._display_name(key)
            if name:
                return DescriptorEntry(
                    core_id=key,
                    display_name=name,
                    library_name=self._raw.get(key + _LIBRARY_SUFFIX, ""),
                    notes=self._raw.get(key + _NOTES_SUFFIX, ""),
                )
        return None
