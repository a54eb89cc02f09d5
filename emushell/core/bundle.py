"""Read-only bundled resource trees.

A bundle is addressed by ``/``-separated paths relative to its root ("" is the
root itself).  Every node is either a directory (has children) or a file
(has bytes), see :class:`~emushell.models.asset.AssetNode`.

Two backends:
  • ``DirectoryBundle`` — a plain directory on disk
  • ``ZipBundle``       — a zip archive (e.g. an APK) with assets under a prefix
"""

from __future__ import annotations

import zipfile
from pathlib import Path
from typing import Iterator, Protocol

from loguru import logger

from emushell.models.asset import AssetNode, NodeKind


def _join(parent: str, name: str) -> str:
    return f"{parent}/{name}" if parent else name


def _normalize(path: str) -> str:
    return path.replace("\\", "/").strip("/")


class AssetBundle(Protocol):
    """Read-only tree interface consumed by AssetSync."""

    def node(self, path: str) -> AssetNode: ...

    def children(self, path: str) -> list[AssetNode]: ...

    def read_bytes(self, path: str) -> bytes: ...

    def close(self) -> None: ...


def walk(bundle: AssetBundle, path: str) -> Iterator[AssetNode]:
    """
    Depth-first walk rooted at *path*, directories before their contents.

    Raises FileNotFoundError if *path* does not exist in the bundle.
    """
    root = bundle.node(path)
    yield root
    if root.is_dir:
        for child in bundle.children(root.path):
            yield from walk(bundle, child.path)


class DirectoryBundle:
    """Bundle backed by a directory on disk."""

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, path: str) -> Path:
        rel = _normalize(path)
        return self._root / rel if rel else self._root

    def node(self, path: str) -> AssetNode:
        rel = _normalize(path)
        fs_path = self._resolve(rel)
        if fs_path.is_dir():
            return AssetNode(rel, NodeKind.DIRECTORY)
        if fs_path.exists():
            return AssetNode(rel, NodeKind.FILE)
        raise FileNotFoundError(f"No such bundle entry: {rel or '<root>'}")

    def children(self, path: str) -> list[AssetNode]:
        rel = _normalize(path)
        nodes: list[AssetNode] = []
        for child in sorted(self._resolve(rel).iterdir(), key=lambda p: p.name):
            kind = NodeKind.DIRECTORY if child.is_dir() else NodeKind.FILE
            nodes.append(AssetNode(_join(rel, child.name), kind))
        return nodes

    def read_bytes(self, path: str) -> bytes:
        return self._resolve(path).read_bytes()

    def close(self) -> None:
        pass


class ZipBundle:
    """
    Bundle backed by a zip archive.

    Only entries under *prefix* are visible; ``assets/shaders/a.glsl`` in the
    archive is ``shaders/a.glsl`` in the bundle.  Directories are inferred
    from entry names, explicit directory entries are optional.
    """

    def __init__(self, archive: Path, prefix: str = "assets") -> None:
        self._archive_path = archive
        self._prefix = _normalize(prefix)
        self._zf: zipfile.ZipFile | None = None
        self._files: set[str] = set()
        self._dirs: dict[str, set[str]] = {}

    def __enter__(self) -> ZipBundle:
        self._open()
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        if self._zf is not None:
            self._zf.close()
            self._zf = None

    def _open(self) -> zipfile.ZipFile:
        if self._zf is None:
            self._zf = zipfile.ZipFile(self._archive_path)
            self._index(self._zf.namelist())
        return self._zf

    def _index(self, names: list[str]) -> None:
        self._files.clear()
        self._dirs = {"": set()}
        head = f"{self._prefix}/" if self._prefix else ""
        for name in names:
            if not name.startswith(head):
                continue
            rel = name[len(head):]
            is_dir = rel.endswith("/")
            rel = rel.strip("/")
            if not rel:
                continue
            parts = rel.split("/")
            if any(part in ("", ".", "..") for part in parts):
                logger.warning(f"Ignoring unsafe bundle entry: {name}")
                continue
            # Register every ancestor directory
            for i in range(len(parts)):
                parent = "/".join(parts[:i])
                self._dirs.setdefault(parent, set()).add(parts[i])
            if is_dir:
                self._dirs.setdefault(rel, set())
            else:
                self._files.add(rel)

    def _entry_name(self, rel: str) -> str:
        return _join(self._prefix, rel)

    def node(self, path: str) -> AssetNode:
        self._open()
        rel = _normalize(path)
        if rel in self._dirs:
            return AssetNode(rel, NodeKind.DIRECTORY)
        if rel in self._files:
            return AssetNode(rel, NodeKind.FILE)
        raise FileNotFoundError(f"No such bundle entry: {rel or '<root>'}")

    def children(self, path: str) -> list[AssetNode]:
        self._open()
        rel = _normalize(path)
        if rel not in self._dirs:
            raise NotADirectoryError(f"Not a bundle directory: {rel or '<root>'}")
        nodes: list[AssetNode] = []
        for name in sorted(self._dirs[rel]):
            child = _join(rel, name)
            kind = NodeKind.DIRECTORY if child in self._dirs else NodeKind.FILE
            nodes.append(AssetNode(child, kind))
        return nodes

    def read_bytes(self, path: str) -> bytes:
        zf = self._open()
        rel = _normalize(path)
        if rel not in self._files:
            raise FileNotFoundError(f"No such bundle file: {rel}")
        return zf.read(self._entry_name(rel))


def open_bundle(location: Path, prefix: str = "assets") -> DirectoryBundle | ZipBundle:
    """Pick the backend for *location*: a directory or a zip/APK archive."""
    if location.is_dir():
        return DirectoryBundle(location)
    return ZipBundle(location, prefix)
