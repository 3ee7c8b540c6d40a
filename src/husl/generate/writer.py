"""
Artifact tree snapshots and atomic writes.

The engine never walks the output tree. Callers read an ArtifactTree
snapshot for the paths a projection produces, plus ``sibling_paths`` beside
them on a full run, and pass it in. Writes go through ``atomic_write`` so a
reader never sees a half-written artifact.
"""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from husl.core.errors import ArtifactIOError

logger = logging.getLogger(__name__)


def resolve_artifact(root: Path, relative: str) -> Path:
    """
    Resolve an artifact path below the output root.

    Raises:
        ArtifactIOError: If the path escapes the root
    """
    root = root.resolve()
    target = (root / relative).resolve()
    if target != root and root not in target.parents:
        raise ArtifactIOError(relative, ValueError(f"path escapes output directory {root}"))
    return target


def read_artifact(root: Path, relative: str) -> str | None:
    """
    Read one artifact, or None if it does not exist.

    Raises:
        ArtifactIOError: If the file exists but cannot be read
    """
    target = resolve_artifact(root, relative)
    try:
        return target.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as e:
        raise ArtifactIOError(target, e) from e


def sibling_paths(root: Path, paths: Iterable[str]) -> list[str]:
    """
    Existing files beside the given artifact paths that are not among them.

    Only directories holding one of ``paths`` are listed, and only files with
    a suffix an artifact in that directory uses.

    Raises:
        ArtifactIOError: If a directory exists but cannot be listed
    """
    known = set(paths)
    suffixes: dict[PurePosixPath, set[str]] = {}
    for relative in known:
        path = PurePosixPath(relative)
        suffixes.setdefault(path.parent, set()).add(path.suffix)

    found: list[str] = []
    for directory, wanted in sorted(suffixes.items()):
        target = resolve_artifact(root, directory.as_posix())
        if not target.is_dir():
            continue
        try:
            entries = sorted(target.iterdir())
        except OSError as e:
            raise ArtifactIOError(target, e) from e
        for entry in entries:
            relative = (directory / entry.name).as_posix()
            if entry.suffix in wanted and relative not in known and entry.is_file():
                found.append(relative)
    return found


def atomic_write(path: Path, content: str, *, encoding: str = "utf-8") -> None:
    """
    Atomically write ``content`` to ``path``.

    The content goes to a temp file in the same directory, is flushed and
    fsynced, and then replaces the target via ``os.replace``.

    Raises:
        ArtifactIOError: If any step fails; the target is left untouched
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    except OSError as e:
        raise ArtifactIOError(path, e) from e

    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, path)
    except OSError as e:
        with contextlib.suppress(OSError):
            temp_path.unlink(missing_ok=True)
        raise ArtifactIOError(path, e) from e
    logger.debug(f"Wrote {path}")


@dataclass
class ArtifactTree:
    """
    Snapshot of persisted artifacts, keyed by relative path.

    Paths absent from ``files`` do not exist on disk. ``errors`` holds paths
    that exist but could not be read.
    """

    root: Path | None = None
    files: dict[str, str] = field(default_factory=dict)
    errors: dict[str, ArtifactIOError] = field(default_factory=dict)

    @classmethod
    def read(cls, root: Path, paths: Iterable[str]) -> ArtifactTree:
        """Snapshot the given artifact paths below ``root``."""
        tree = cls(root=root)
        for relative in paths:
            try:
                content = read_artifact(root, relative)
            except ArtifactIOError as e:
                tree.errors[relative] = e
                continue
            if content is not None:
                tree.files[relative] = content
        return tree

    @classmethod
    def from_mapping(cls, files: Mapping[str, str]) -> ArtifactTree:
        """In-memory tree, mainly for planning without a filesystem."""
        return cls(files=dict(files))

    @classmethod
    def empty(cls) -> ArtifactTree:
        return cls()

    def get(self, path: str) -> str | None:
        return self.files.get(path)

    def __contains__(self, path: object) -> bool:
        return path in self.files

    def __len__(self) -> int:
        return len(self.files)


__all__ = ["resolve_artifact", "read_artifact", "sibling_paths", "atomic_write", "ArtifactTree"]
