"""ZIM archive access.

The conversion pipeline only talks to archives through :class:`ArchiveReader`.
:class:`LibzimReader` implements it on top of the ``libzim`` bindings.
Readers are not thread-safe: a single task drives a reader at any time.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterator, Optional, Protocol

from libzim.reader import Archive

from zimswarm.errors import DecodeOpenError, EntryFetchError, RedirectResolutionError
from zimswarm.models import ArchiveEntry, EntryKind, Namespace

LOGGER = logging.getLogger(__name__)

_NAMESPACE_PREFIX = re.compile(r"^(?P<ns>[^/])/")
# Old-style namespaces are "-" or a capital letter.
_LEGACY_PREFIX = re.compile(r"^[-A-Z]/")


class ArchiveReader(Protocol):
    """Decoder contract consumed by the parser and the page builders."""

    filename: str

    @property
    def entry_count(self) -> int: ...

    def iter_indices(self) -> Iterator[int]: ...

    def entry_at(self, index: int) -> ArchiveEntry: ...

    def payload(self, index: int) -> bytes: ...

    def redirect_target(self, index: int) -> int: ...

    def main_page(self) -> Optional[ArchiveEntry]: ...

    def close(self) -> None: ...


def split_namespace(path: str, namespaced: bool = True) -> str:
    """Return the namespace code of a ZIM path.

    Old-style archives expose paths such as ``A/Main_Page``. Newer archives
    only expose user content, without a namespace prefix; everything in them
    is an article, even a path like ``s/style.css``.
    """
    match = _NAMESPACE_PREFIX.match(path) if namespaced else None
    if match is None:
        return Namespace.ARTICLE.value
    return match.group("ns")


class LibzimReader:
    """:class:`ArchiveReader` backed by :class:`libzim.reader.Archive`."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self.filename = self.path.name
        try:
            self._archive = Archive(self.path)
        except Exception as exc:
            raise DecodeOpenError(str(self.path), f"Unable to open {self.path}: {exc}") from exc
        self.namespaced = self._uses_namespaces()
        LOGGER.debug("%s uses %s paths", self.filename, "namespaced" if self.namespaced else "plain")

    @property
    def entry_count(self) -> int:
        return self._archive.entry_count

    def iter_indices(self) -> Iterator[int]:
        yield from range(self._archive.entry_count)

    def _uses_namespaces(self) -> bool:
        try:
            if self._archive.has_main_entry:
                sample = self._archive.main_entry.path
            elif self._archive.entry_count:
                sample = self._archive._get_entry_by_id(0).path
            else:
                return False
        except Exception as exc:
            raise DecodeOpenError(str(self.path), f"Unable to read {self.path}: {exc}") from exc
        return _LEGACY_PREFIX.match(sample) is not None

    def _entry(self, index: int):
        return self._archive._get_entry_by_id(index)

    def _describe(self, entry, index: int) -> ArchiveEntry:
        if entry.is_redirect:
            kind = EntryKind.REDIRECT
            mime_type = ""
        else:
            kind = EntryKind.NORMAL
            mime_type = entry.get_item().mimetype
        return ArchiveEntry(
            index=index,
            full_url=entry.path,
            namespace=split_namespace(entry.path, self.namespaced),
            title=entry.title,
            mime_type=mime_type,
            kind=kind,
        )

    def entry_at(self, index: int) -> ArchiveEntry:
        try:
            return self._describe(self._entry(index), index)
        except Exception as exc:
            raise EntryFetchError(index, f"Unable to read entry {index}: {exc}") from exc

    def payload(self, index: int) -> bytes:
        try:
            return bytes(self._entry(index).get_item().content)
        except Exception as exc:
            raise EntryFetchError(index, f"Unable to read entry {index}: {exc}") from exc

    def redirect_target(self, index: int) -> int:
        try:
            target = self._entry(index).get_redirect_entry()
        except Exception as exc:
            raise RedirectResolutionError(
                index, f"Unable to resolve redirect for entry {index}: {exc}"
            ) from exc
        return target._index

    def main_page(self) -> Optional[ArchiveEntry]:
        if not self._archive.has_main_entry:
            return None
        entry = self._archive.main_entry
        # The main entry is usually a redirect to the real home page.
        while entry.is_redirect:
            entry = entry.get_redirect_entry()
        return self._describe(entry, entry._index)

    def close(self) -> None:
        # libzim releases the file when the archive is garbage collected.
        LOGGER.debug("Closing archive %s", self.filename)
        self._archive = None


def open_reader(path: Path | str) -> LibzimReader:
    """Open a ZIM file for conversion."""
    return LibzimReader(path)
