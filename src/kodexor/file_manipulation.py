from __future__ import annotations

import contextlib
import json
import os
import re
from pathlib import Path
from typing import TYPE_CHECKING

import tomlkit

from kodexor.config import (
    DEFAULT_OUTPUT,
    DEFAULT_PROJECT_NAME,
    MANIFEST_NAMES,
    FileEntry,
    FileResult,
)
from kodexor.logging import logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Sequence

_UNSAFE_NAME_CHARS = re.compile(r"[^\w\-.]", flags=re.ASCII)


def is_excluded(rel_path: str, exclude_list: Sequence[str]) -> bool:
    """Check a relative path against the exclusion list.

    An entry matches when it is the exact path, an ancestor directory of the
    path, or the path's final segment. The last mode applies at any depth, so
    excluding ``"test"`` drops every file or directory named ``test``.

    Args:
        rel_path (str): path relative to the scan root, platform separators
        exclude_list (Sequence[str]): exclusion entries

    Returns:
        bool: True if any entry matches
    """
    base = os.path.basename(rel_path)
    return any(
        rel_path == ex or rel_path.startswith(ex + os.sep) or base == ex
        for ex in exclude_list
    )


def walk(
    directory: str | Path,
    exclude_dirs: Sequence[str] = (),
    parent_rel: str = "",
) -> Iterator[FileEntry]:
    """Yield the regular files under ``directory``, depth first.

    Entries are visited in name order. Exclusion is checked before descending,
    so the content of an excluded directory is never listed. Symlinks are
    skipped. A subdirectory that cannot be listed is logged and skipped; the
    root itself must be readable.

    Args:
        directory (str | Path): directory to scan
        exclude_dirs (Sequence[str]): exclusion entries, see `is_excluded`
        parent_rel (str): relative path of ``directory`` from the scan root

    Yields:
        FileEntry: one entry per regular file
    """
    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        if not parent_rel:
            raise
        logger.warning("Cannot list %s: %s", parent_rel, e)
        return
    for entry in entries:
        rel = os.path.join(parent_rel, entry.name)
        if is_excluded(rel, exclude_dirs):
            continue
        if entry.is_symlink():
            continue
        if entry.is_dir(follow_symlinks=False):
            yield from walk(entry.path, exclude_dirs, rel)
        elif entry.is_file(follow_symlinks=False):
            yield FileEntry(rel_path=rel, abs_path=Path(entry.path))


def read_entry(entry: FileEntry) -> FileResult:
    """Read a file as UTF-8 text, byte for byte (line endings are kept).

    Read errors and decoding errors are turned into a failed result instead of
    being raised.

    Args:
        entry (FileEntry): the file to read

    Returns:
        FileResult: the content on success, the error description otherwise
    """
    try:
        content = entry.abs_path.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Cannot read %s: %s", entry.rel_path, e)
        return FileResult.failure(entry.rel_path, f"{type(e).__name__}: {e}")
    return FileResult.success(entry.rel_path, content)


def collect_files(entries: Iterable[FileEntry]) -> list[FileResult]:
    """Read every entry, in order."""
    return [read_entry(entry) for entry in entries]


def find_nearest_manifest(start: Path) -> Path | None:
    """Find the closest directory at or above ``start`` holding a package manifest.

    Args:
        start (Path): directory to start from

    Returns:
        Path | None: the manifest file, or None when no ancestor has one
    """
    cur = start.resolve()
    while True:
        for name in MANIFEST_NAMES:
            candidate = cur / name
            if candidate.is_file():
                return candidate
        if cur.parent == cur:
            return None
        cur = cur.parent


def read_manifest_name(manifest: Path) -> str:
    """Read the package name from a ``package.json`` or ``pyproject.toml``.

    Returns:
        str: the declared name, or an empty string if missing or unreadable
    """
    try:
        text = manifest.read_text(encoding="utf-8")
        if manifest.name == "pyproject.toml":
            name = tomlkit.parse(text).get("project", {}).get("name", "")
        else:
            name = json.loads(text).get("name", "")
    except Exception as e:  # noqa: BLE001
        logger.warning("Cannot read package name from %s: %s", manifest, e)
        return ""
    return str(name) if isinstance(name, str) else ""


def sanitize_name(name: str) -> str:
    """Replace every character outside ``[A-Za-z0-9_.-]`` with ``_``."""
    return _UNSAFE_NAME_CHARS.sub("_", name)


def derive_output_name(cwd: Path) -> str:
    """Build the export file name used when only an output directory is configured.

    The name joins the sanitized package name with the path segments leading
    from the manifest directory down to ``cwd``, e.g. ``app-packages-core-export.md``.

    Args:
        cwd (Path): the directory being exported

    Returns:
        str: the file name
    """
    cwd = cwd.resolve()
    manifest = find_nearest_manifest(cwd)
    name = read_manifest_name(manifest) if manifest else ""
    if not name:
        name = manifest.parent.name if manifest else cwd.name
    segments = list(cwd.relative_to(manifest.parent).parts) if manifest else []
    return "-".join([sanitize_name(name), *segments]) + "-export.md"


def pick_output_path(output: str | None, output_dir: str | None, cwd: Path | None = None) -> str:
    """Choose where the export is written.

    Priority: an explicit output path, then an auto-named file inside the
    output directory, then ``kodexor-export.md`` in the cwd.

    Args:
        output (str | None): resolved output path
        output_dir (str | None): resolved output directory
        cwd (Path | None): the directory being exported, defaults to the cwd

    Returns:
        str: the output path
    """
    if output:
        return output
    if output_dir:
        return os.path.join(output_dir, derive_output_name(cwd or Path.cwd()))
    return DEFAULT_OUTPUT


def with_self_exclusion(exclude: Sequence[str], output_file: str, root: Path) -> list[str]:
    """Add the output file to the exclusion list so an export never contains itself.

    The path as given and its basename are always added. When the output file
    lives under ``root`` its root-relative path is added too.

    Args:
        exclude (Sequence[str]): resolved exclusion list
        output_file (str): the output path
        root (Path): the scan root

    Returns:
        list[str]: a new exclusion list
    """
    out = list(exclude)
    candidates = [output_file, os.path.basename(output_file)]
    with contextlib.suppress(ValueError):
        rel = os.path.relpath((root / output_file).resolve(), root.resolve())
        if not rel.startswith(os.pardir):
            candidates.append(rel)
    for item in candidates:
        if item and item not in out:
            out.append(item)
    return out


def read_project_name(root: Path) -> str:
    """Get the title of the export from the manifest in ``root``.

    Args:
        root (Path): the scan root

    Returns:
        str: the package name, or ``"Project"``
    """
    for manifest_name in MANIFEST_NAMES:
        manifest = root / manifest_name
        if manifest.is_file():
            name = read_manifest_name(manifest)
            if name:
                return name
    return DEFAULT_PROJECT_NAME
