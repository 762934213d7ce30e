"""File synchronization - Copy a package source into its install directory.

Two strategies, selected by the source type:
- Local: recursive walk of the checkout, minus the descriptor's exclude list
- Remote: fixed allow-list of files fetched one by one (URLs cannot be listed)
"""

import logging
import os
import shutil
from pathlib import Path

import httpx

from .exceptions import FileSystemError
from .schema import PackageMetadata
from .schema import fetch_bytes
from .sources import TYPST_TOML_FILENAME
from .sources import LocalSource
from .sources import RemoteSource
from .sources import SourceHandle

logger = logging.getLogger(__name__)

# Files making up a minimal published package. The entrypoint is appended at
# sync time since it is named by the descriptor.
INCLUDE_FILES: tuple[str, ...] = (TYPST_TOML_FILENAME, "README.md")


def remote_include_files(meta: PackageMetadata, include_files: tuple[str, ...] = INCLUDE_FILES) -> list[str]:
    """Allow-list for a remote install: include_files plus the entrypoint."""
    files = list(include_files)
    if meta.entrypoint not in files:
        files.append(meta.entrypoint)
    return files


def _ensure_parent(path: Path) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FileSystemError(f"Cannot create directory {path.parent}: {e}", context={"path": str(path.parent)}) from e


def _target_within(dest_dir: Path, file_name: str) -> Path:
    to_path = dest_dir / file_name
    if not to_path.resolve().is_relative_to(dest_dir.resolve()):
        raise FileSystemError(
            f"Refusing to write {file_name!r} outside {dest_dir}",
            context={"path": str(to_path), "dest_dir": str(dest_dir)},
        )
    return to_path


async def sync_remote(
    source: RemoteSource,
    meta: PackageMetadata,
    dest_dir: Path,
    client: httpx.AsyncClient,
    include_files: tuple[str, ...] = INCLUDE_FILES,
    log: logging.Logger | None = None,
) -> list[str]:
    """
    Fetch the allow-listed files from a remote source into dest_dir.

    Files are fetched sequentially so a failure names exactly one URL. The
    exclude list is not applied here.

    Raises:
        TransferError: If any fetch fails (files fetched before it stay on disk)
        FileSystemError: If writing fails
    """
    log = log or logger
    written = []
    for file_name in remote_include_files(meta, include_files):
        from_url = source.url_for(file_name)
        to_path = _target_within(dest_dir, file_name)
        content = await fetch_bytes(client, from_url)
        log.debug(f"Fetched {from_url} -> {to_path} ({len(content)} bytes)")

        _ensure_parent(to_path)
        try:
            to_path.write_bytes(content)
        except OSError as e:
            raise FileSystemError(f"Cannot write {to_path}: {e}", context={"path": str(to_path)}) from e
        written.append(file_name)
    return written


def _resolve_excludes(root: Path, exclude: frozenset[str]) -> set[Path]:
    # Exact paths only; entries naming nothing simply never match. A symlink
    # entry names the link itself, not its target.
    return {Path(os.path.normpath(root / entry)) for entry in exclude}


def sync_local(
    source: LocalSource,
    meta: PackageMetadata,
    dest_dir: Path,
    log: logging.Logger | None = None,
) -> list[str]:
    """
    Copy every file under the source root into dest_dir, skipping excluded ones.

    Directories are created only as parents of copied files. Content is copied
    byte-for-byte.

    Args:
        source: Local package checkout
        meta: Package metadata (exclude list is relative to the root)
        dest_dir: Install directory

    Returns:
        Relative paths (POSIX form) of the copied files, in walk order

    Raises:
        FileSystemError: If reading, copying or creating directories fails
    """
    log = log or logger
    root_path = source.root_path
    try:
        resolved_root = root_path.resolve()
        excluded = _resolve_excludes(resolved_root, meta.exclude)
    except OSError as e:
        raise FileSystemError(f"Cannot resolve exclude paths under {root_path}: {e}") from e

    written = []
    try:
        for from_path in root_path.rglob("*"):
            if not from_path.is_file():
                continue
            relative = from_path.relative_to(root_path)
            # Walked paths are compared without following their own symlinks
            if resolved_root / relative in excluded:
                log.debug(f"Excluded {from_path}")
                continue

            to_path = dest_dir / relative
            _ensure_parent(to_path)
            shutil.copyfile(from_path, to_path)
            log.debug(f"Copied {from_path} -> {to_path}")
            written.append(relative.as_posix())
    except OSError as e:
        raise FileSystemError(
            f"Failed to copy package files from {root_path}: {e}",
            context={"root_path": str(root_path), "dest_dir": str(dest_dir)},
        ) from e
    return written


async def sync_package_files(
    handle: SourceHandle,
    meta: PackageMetadata,
    dest_dir: Path,
    client: httpx.AsyncClient | None = None,
    include_files: tuple[str, ...] = INCLUDE_FILES,
    log: logging.Logger | None = None,
) -> list[str]:
    """
    Sync package files from a resolved source into dest_dir.

    Args:
        handle: Resolved package source
        meta: Parsed package metadata
        dest_dir: Install directory (must already exist)
        client: HTTP client, required for remote sources
        include_files: Remote allow-list (entrypoint is always added)
        log: Logger for per-file diagnostics

    Returns:
        Relative paths of installed files
    """
    match handle:
        case LocalSource():
            return sync_local(handle, meta, dest_dir, log=log)
        case RemoteSource():
            if client is None:
                raise TypeError("an httpx.AsyncClient is required for remote sources")
            return await sync_remote(handle, meta, dest_dir, client, include_files=include_files, log=log)
