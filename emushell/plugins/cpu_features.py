"""Host CPU feature detection via ``/proc/cpuinfo``."""

from __future__ import annotations

from pathlib import Path

from loguru import logger

_CPUINFO_PATH = Path("/proc/cpuinfo")

# ARM lists extensions under "Features", x86 under "flags"
_FEATURE_KEYS = ("features", "flags")


class CpuFeatures:
    """Set of instruction-set extensions the host CPU reports."""

    def __init__(self, features: set[str] | None = None) -> None:
        self._features = {f.lower() for f in features or ()}

    @classmethod
    def detect(cls, cpuinfo_path: Path = _CPUINFO_PATH) -> CpuFeatures:
        """Read the feature list; an unreadable file yields no features."""
        try:
            text = cpuinfo_path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.debug(f"Cannot read {cpuinfo_path}: {e}")
            return cls()
        return cls.parse(text)

    @classmethod
    def parse(cls, text: str) -> CpuFeatures:
        features: set[str] = set()
        for line in text.splitlines():
            key, sep, value = line.partition(":")
            if sep and key.strip().lower() in _FEATURE_KEYS:
                features.update(value.split())
        return cls(features)

    def has_feature(self, name: str) -> bool:
        return name.lower() in self._features

    @property
    def features(self) -> frozenset[str]:
        return frozenset(self._features)
