"""Resolve content hashes to files in the client's content-addressed store.

Files live under ``<root>/files/<h[0]>/<h[0:2]>/<hash>``. Resolution globs
that shard path case-insensitively instead of checking one exact path, since
the on-disk layout may differ in letter case. Matches are returned sorted so
the first one is stable across platforms and runs.
"""

import glob
import logging
import os
import sys
from pathlib import Path

logger = logging.getLogger(__name__)

FILES_DIRNAME = "files"
CLIENT_DIRNAME = "osu"


def app_data_dir() -> Path:
    """Return the platform's per-user application-data directory."""
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata)
        return Path.home() / "AppData" / "Roaming"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support"
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg)
    return Path.home() / ".config"


def default_storage_root() -> Path:
    """Client data directory holding the ``files`` store."""
    return app_data_dir() / CLIENT_DIRNAME


def shard_relpath(file_hash: str) -> str:
    return f"{FILES_DIRNAME}/{file_hash[:1]}/{file_hash[:2]}/{file_hash}"


def shard_path(storage_root: Path | str, file_hash: str) -> Path:
    """Expected location of *file_hash* under *storage_root*."""
    return Path(storage_root) / shard_relpath(file_hash)


def resolve(storage_root: Path | str, file_hash: str | None) -> list[str]:
    """Return absolute, forward-slash paths of files stored for *file_hash*.

    An absent hash returns an empty list without touching the file system.
    No match is not an error either: the file may not be downloaded yet.
    """
    if not file_hash:
        return []

    pattern = shard_relpath(glob.escape(file_hash))
    matches = Path(storage_root).glob(pattern, case_sensitive=False)
    paths = sorted(p.absolute().as_posix() for p in matches)
    if len(paths) > 1:
        logger.debug("Hash %s resolved to %d files, using %s", file_hash, len(paths), paths[0])
    return paths


def resolve_first(storage_root: Path | str, file_hash: str | None) -> str | None:
    paths = resolve(storage_root, file_hash)
    return paths[0] if paths else None
