"""Archive parsing pipeline.

A :class:`ZimParser` walks the archive on a background thread and hands each
converted :class:`~zimswarm.models.Article` to the consumer through a
one-slot queue, so the parser never runs ahead of the writer by more than a
single article.
"""

from __future__ import annotations

import logging
import posixpath
import queue
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from zimswarm.errors import EntryFetchError, RedirectResolutionError
from zimswarm.index.metadata import MetadataIndex
from zimswarm.ingestion.zim_reader import ArchiveReader
from zimswarm.models import ArchiveEntry, Article, EntryKind, Namespace, RunState
from zimswarm.render.pages import PageRenderer

LOGGER = logging.getLogger(__name__)

_PUT_POLL_SECONDS = 0.1
_DONE = object()


@dataclass(slots=True)
class ParseStats:
    visited: int = 0
    emitted: int = 0
    deleted: int = 0
    excluded: int = 0
    redirect_failures: int = 0
    fetch_failures: int = 0

    @property
    def failed(self) -> int:
        return self.redirect_failures + self.fetch_failures


@dataclass(frozen=True, slots=True)
class SkipEvent:
    """Notification for an entry dropped because it could not be converted."""

    index: int
    path: str
    reason: str
    error: Exception


@dataclass(frozen=True, slots=True)
class _Failure:
    error: BaseException


class ArticleStream:
    """Single-use iterator over the articles produced by a parser run.

    Iteration raises the parser's fatal error, if any, once the articles
    produced before it have been consumed. Closing the stream (or leaving
    its ``with`` block) stops the parser thread.
    """

    def __init__(self, parser: "ZimParser", handoff: queue.Queue, stop: threading.Event) -> None:
        self._parser = parser
        self._queue = handoff
        self._stop = stop
        self._finished = False

    def __iter__(self) -> Iterator[Article]:
        while not self._finished:
            item = self._queue.get()
            if item is _DONE:
                self._finished = True
            elif isinstance(item, _Failure):
                self._finished = True
                raise item.error
            else:
                yield item

    def close(self) -> None:
        self._stop.set()
        # Unblock a parser waiting on a full queue.
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break
        self._parser.join()
        self._finished = True

    def result(self) -> ParseStats:
        """Wait for the run to finish and return its stats, or raise its error."""
        self._parser.join()
        if self._parser.error is not None:
            raise self._parser.error
        return self._parser.stats

    def __enter__(self) -> "ArticleStream":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class ZimParser:
    """Converts the entries of one archive into articles, exactly once."""

    def __init__(
        self,
        reader: ArchiveReader,
        index: MetadataIndex,
        *,
        renderer: PageRenderer,
        observer: Optional[Callable[[SkipEvent], None]] = None,
        on_progress: Optional[Callable[[int], None]] = None,
    ) -> None:
        self.reader = reader
        self.index = index
        self.renderer = renderer
        self.observer = observer
        self.on_progress = on_progress
        self.stats = ParseStats()
        self.state = RunState.NOT_STARTED
        self.error: Optional[BaseException] = None
        self._queue: queue.Queue = queue.Queue(maxsize=1)
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def run(self) -> ArticleStream:
        """Start parsing in the background and return the article stream."""
        if self.state is not RunState.NOT_STARTED:
            raise RuntimeError("A parser can only be run once; create a new one for another pass")
        self.state = RunState.RUNNING
        self._thread = threading.Thread(
            target=self._parse, name=f"zim-parser-{self.reader.filename}", daemon=True
        )
        self._thread.start()
        return ArticleStream(self, self._queue, self._stop)

    def join(self) -> None:
        if self._thread is not None:
            self._thread.join()

    def _put(self, item: object) -> bool:
        while not self._stop.is_set():
            try:
                self._queue.put(item, timeout=_PUT_POLL_SECONDS)
                return True
            except queue.Full:
                continue
        return False

    def _notify(self, index: int, path: str, reason: str, error: Exception) -> None:
        LOGGER.warning("Skipping %s (%s): %s", path or f"entry {index}", reason, error)
        if self.observer is not None:
            self.observer(SkipEvent(index=index, path=path, reason=reason, error=error))

    def _parse(self) -> None:
        LOGGER.info("Parsing zim file: %s", self.reader.filename)
        start = time.perf_counter()
        try:
            for idx in self.reader.iter_indices():
                if self._stop.is_set():
                    break
                self.stats.visited += 1
                try:
                    entry = self.reader.entry_at(idx)
                except EntryFetchError as exc:
                    self.stats.fetch_failures += 1
                    self._notify(idx, "", "fetch", exc)
                    entry = None
                article = self._convert(entry) if entry is not None else None
                if article is not None and not self._put(article):
                    break
                if self.on_progress is not None:
                    self.on_progress(self.stats.visited)
        except Exception as exc:
            LOGGER.error("Parsing %s aborted: %s", self.reader.filename, exc)
            self.error = exc
            self.state = RunState.ABORTED
            self._put(_Failure(exc))
            return

        if self._stop.is_set():
            LOGGER.info("Parsing %s stopped by the consumer", self.reader.filename)
            self.state = RunState.ABORTED
        else:
            self.state = RunState.COMPLETED
            LOGGER.info("File processed in %.2fs", time.perf_counter() - start)
        self._put(_DONE)

    def _resolve(self, entry: ArchiveEntry) -> ArchiveEntry:
        target_index = self.reader.redirect_target(entry.index)
        try:
            return self.reader.entry_at(target_index)
        except EntryFetchError as exc:
            raise RedirectResolutionError(
                entry.index, f"Redirect target {target_index} of {entry.full_url} is unreadable: {exc}"
            ) from exc

    def _convert(self, entry: ArchiveEntry) -> Optional[Article]:
        if entry.kind is EntryKind.DELETED:
            self.stats.deleted += 1
            return None
        if Namespace.from_code(entry.namespace) is None:
            LOGGER.debug("Ignoring %s in namespace %r", entry.full_url, entry.namespace)
            self.stats.excluded += 1
            return None

        if entry.kind is EntryKind.REDIRECT:
            try:
                target = self._resolve(entry)
            except RedirectResolutionError as exc:
                self.stats.redirect_failures += 1
                self._notify(entry.index, entry.full_url, "redirect", exc)
                return None
            # RenderError propagates and aborts the run.
            data = self.renderer.render_redirect(posixpath.basename(target.full_url))
        else:
            try:
                data = self.reader.payload(entry.index)
            except EntryFetchError as exc:
                self.stats.fetch_failures += 1
                self._notify(entry.index, entry.full_url, "fetch", exc)
                return None

        self.index.insert(entry.full_url, {"Title": entry.title, "MimeType": entry.mime_type})
        self.stats.emitted += 1
        return Article(path=entry.full_url, data=data)
