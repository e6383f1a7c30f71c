"""Input discovery for the command line."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

LOGGER = logging.getLogger(__name__)

# ZIM headers start with the little-endian magic number 72173914.
ZIM_MAGIC = (72173914).to_bytes(4, "little")


def has_zim_header(path: Path) -> bool:
    """Return True when ``path`` starts with the ZIM magic number."""
    try:
        with path.open("rb") as handle:
            return handle.read(len(ZIM_MAGIC)) == ZIM_MAGIC
    except OSError:
        return False


def find_zim_archives(inputs: Iterable[Path]) -> list[Path]:
    """Collect the ZIM archives named by ``inputs``.

    Directories are searched recursively for ``*.zim`` files. Explicit file
    arguments are accepted when they carry the ``.zim`` suffix or a ZIM
    header. Each archive is listed once, in path order.
    """
    found: dict[Path, Path] = {}
    for item in inputs:
        if item.is_dir():
            candidates = [child for child in item.rglob("*") if child.is_file() and child.suffix.lower() == ".zim"]
        elif item.is_file() and (item.suffix.lower() == ".zim" or has_zim_header(item)):
            candidates = [item]
        else:
            LOGGER.warning("Ignoring %s: not a ZIM archive", item)
            continue
        for candidate in candidates:
            found.setdefault(candidate.resolve(), candidate)
    return [found[key] for key in sorted(found)]
