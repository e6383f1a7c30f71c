"""Writers persisting converted articles as a directory tree or a tar file."""

from __future__ import annotations

import io
import logging
import tarfile
from pathlib import Path
from typing import Iterable

from zimswarm.errors import OutputWriteError
from zimswarm.models import Article

LOGGER = logging.getLogger(__name__)

MEMBER_MODE = 0o600


def _member(name: str, size: int) -> tarfile.TarInfo:
    # Fixed metadata keeps the output byte-identical across runs.
    info = tarfile.TarInfo(name=name)
    info.size = size
    info.mode = MEMBER_MODE
    info.mtime = 0
    return info


def extract_to_directory(output_root: Path, articles: Iterable[Article]) -> int:
    """Write every article under ``output_root``, mirroring its path.

    Later articles with the same path overwrite earlier ones.
    """
    root = Path(output_root)
    try:
        root.mkdir(parents=True, exist_ok=True)
        resolved_root = root.resolve()
    except OSError as exc:
        raise OutputWriteError(f"Unable to create {root}: {exc}") from exc

    written = 0
    for article in articles:
        file_path = root / article.path
        if not file_path.resolve().is_relative_to(resolved_root):
            raise OutputWriteError(f"Refusing to write {article.path!r} outside {root}")
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_bytes(article.data)
        except OSError as exc:
            raise OutputWriteError(f"Unable to write {file_path}: {exc}") from exc
        written += 1
    LOGGER.info("Extracted %d files into %s", written, root)
    return written


def write_tar(tar_file: Path, articles: Iterable[Article]) -> int:
    """Stream articles into a new tar file, in arrival order."""
    tar_file = Path(tar_file)
    written = 0
    try:
        with tarfile.open(tar_file, mode="w") as tar:
            for article in articles:
                tar.addfile(_member(article.path, len(article.data)), io.BytesIO(article.data))
                written += 1
    except (OSError, tarfile.TarError) as exc:
        raise OutputWriteError(f"Unable to write {tar_file}: {exc}") from exc
    LOGGER.info("Wrote %d entries into %s", written, tar_file)
    return written


def append_tar_data(tar_file: Path, name: str, data: bytes) -> None:
    """Append a single member to an existing tar file."""
    tar_file = Path(tar_file)
    try:
        with tarfile.open(tar_file, mode="a") as tar:
            tar.addfile(_member(name, len(data)), io.BytesIO(data))
    except (OSError, tarfile.TarError) as exc:
        raise OutputWriteError(f"Unable to append {name} to {tar_file}: {exc}") from exc
    LOGGER.debug("Appended %s (%d bytes) to %s", name, len(data), tar_file)
