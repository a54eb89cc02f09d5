"""Asset sync — extract bundled shader/overlay trees once per software version.

Flow::

    READ_STAMP ─┬─ stamp == version ──────────────────────────→ SKIPPED
                └─ missing / corrupt / stale → EXTRACT_GROUPS → WRITE_STAMP → EXTRACTED

A killed process never reaches WRITE_STAMP, so the next run sees a stale
stamp and extracts everything again.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable, Iterable

from loguru import logger

from emushell.core.bundle import AssetBundle, walk
from emushell.core.version_stamp import STAMP_FILE_NAME, VersionStamp
from emushell.errors import GroupExtractionError, StampWriteError
from emushell.models.asset import AssetGroup, SyncOutcome, SyncResult

DEFAULT_GROUPS: tuple[AssetGroup, ...] = (AssetGroup("shaders"), AssetGroup("overlays"))


class AssetSync:
    """
    Mirrors each asset group from a read-only bundle into the data directory.

    Groups are independent failure units.  By default the stamp advances
    even when a group failed, so a broken bundle entry does not cause a
    full re-extraction on every launch; pass
    ``advance_stamp_on_group_failure=False`` to retry on the next run instead.
    """

    def __init__(
        self,
        bundle: AssetBundle,
        data_dir: Path,
        version: int,
        groups: Iterable[AssetGroup] = DEFAULT_GROUPS,
        stamp_file: str = STAMP_FILE_NAME,
        advance_stamp_on_group_failure: bool = True,
    ) -> None:
        self._bundle = bundle
        self._data_dir = data_dir
        self._version = version
        self._groups = list(groups)
        self._stamp = VersionStamp(data_dir, stamp_file)
        self._advance_on_failure = advance_stamp_on_group_failure

    @property
    def stamp(self) -> VersionStamp:
        return self._stamp

    @property
    def groups(self) -> list[AssetGroup]:
        return list(self._groups)

    def close(self) -> None:
        """Release the bundle (an open zip archive, for example)."""
        self._bundle.close()

    def needs_extraction(self) -> bool:
        return self._stamp.load() != self._version

    def run(self) -> SyncResult:
        """Run one sync pass. Never raises for file-level problems."""
        previous = self._stamp.load()
        result = SyncResult(
            outcome=SyncOutcome.SKIPPED,
            current_version=self._version,
            previous_version=previous,
        )

        if previous == self._version:
            logger.info("Assets already extracted, skipping...")
            return result

        result.outcome = SyncOutcome.EXTRACTED
        logger.info(
            f"Asset cache stale (stamp={previous}, version={self._version}), extracting"
        )

        for group in self._groups:
            logger.info(f"Extracting {group.name} assets now ...")
            try:
                result.files_written += self._extract_group(group)
                result.extracted_groups.append(group.name)
            except GroupExtractionError as e:
                logger.error(f"Failed to extract {group.name}: {e}")
                result.failed_groups.append(group.name)
                result.errors.append(e)

        if result.failed_groups and not self._advance_on_failure:
            logger.warning(
                f"Not advancing cache stamp, failed group(s): {', '.join(result.failed_groups)}"
            )
            return result

        try:
            self._stamp.write(self._version)
            result.stamp_written = True
        except StampWriteError as e:
            logger.error(f"Failed to record asset cache version: {e}")
            result.errors.append(e)

        logger.info(
            f"Asset sync done: {result.files_written} file(s), "
            f"{len(result.extracted_groups)} group(s) ok, {len(result.failed_groups)} failed"
        )
        return result

    def _extract_group(self, group: AssetGroup) -> int:
        """Copy every file of one group; returns the number of files written."""
        source_root = group.source_path
        target_root = self._data_dir / group.target_path
        written = 0
        current = source_root
        try:
            for node in walk(self._bundle, source_root):
                current = node.path
                if node.is_dir:
                    continue
                rel = node.path[len(source_root):].lstrip("/")
                target = target_root / rel if rel else target_root
                data = self._bundle.read_bytes(node.path)
                target.parent.mkdir(parents=True, exist_ok=True)
                with open(target, "wb") as f:
                    f.write(data)
                    f.flush()
                written += 1
                logger.debug(f"Extracted {node.path} → {target}")
        except Exception as e:
            # Corrupt or encrypted zip members raise zlib.error, RuntimeError, ...
            raise GroupExtractionError(str(e), group=group.name, path=current) from e
        return written


class AssetSyncWorker:
    """Runs an AssetSync pass on a background thread so start-up is not blocked."""

    def __init__(
        self,
        sync: AssetSync,
        on_finished: Callable[[SyncResult], None] | None = None,
    ) -> None:
        self._sync = sync
        self._on_finished = on_finished
        self._result: SyncResult | None = None
        self._thread = threading.Thread(target=self._run, name="asset-sync", daemon=True)

    @property
    def result(self) -> SyncResult | None:
        return self._result

    def start(self) -> None:
        self._thread.start()

    def wait(self, timeout: float | None = None) -> SyncResult | None:
        self._thread.join(timeout)
        return self._result

    def is_running(self) -> bool:
        return self._thread.is_alive()

    def _run(self) -> None:
        try:
            self._result = self._sync.run()
        except Exception as e:
            logger.exception(f"Asset sync worker crashed: {e}")
            return
        if self._on_finished is not None:
            self._on_finished(self._result)
