"""Exception types raised across the conversion pipeline.

Per-entry problems (:class:`EntryFetchError`, :class:`RedirectResolutionError`)
are recovered by the parser: the entry is skipped and the observer notified.
Opening, rendering and output failures abort the run.
"""

from __future__ import annotations

from typing import Optional


class ZimSwarmError(Exception):
    """Base class for all zimswarm errors."""


class DecodeOpenError(ZimSwarmError):
    """The archive could not be opened or parsed at all."""

    def __init__(self, path: str, message: Optional[str] = None) -> None:
        self.path = path
        super().__init__(message or f"Unable to open archive: {path}")


class EntryFetchError(ZimSwarmError):
    """The payload of a single entry could not be read."""

    def __init__(self, index: int, message: Optional[str] = None) -> None:
        self.index = index
        super().__init__(message or f"Unable to read entry {index}")


class RedirectResolutionError(ZimSwarmError):
    """A redirect entry does not point at a readable target."""

    def __init__(self, index: int, message: Optional[str] = None) -> None:
        self.index = index
        super().__init__(message or f"Unable to resolve redirect for entry {index}")


class RenderError(ZimSwarmError):
    """An HTML page could not be rendered from its template."""


class NoMainPageError(ZimSwarmError):
    """The archive declares no main page to redirect to."""

    def __init__(self, filename: str) -> None:
        self.filename = filename
        super().__init__(f"No main page found in {filename}")


class OutputWriteError(ZimSwarmError):
    """Writing converted output to disk failed."""


class UploadError(ZimSwarmError):
    """The storage network rejected or failed an upload."""


class DownloadError(ZimSwarmError):
    """Content could not be retrieved from the storage network."""
