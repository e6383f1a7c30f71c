"""Tests for the archive parsing pipeline."""

from __future__ import annotations

import html
import re
import threading
from unittest.mock import MagicMock

import pytest

from tests.fakes import FakeReader
from zimswarm.errors import RedirectResolutionError, RenderError
from zimswarm.index.metadata import MetadataIndex
from zimswarm.index.parser import ParseStats, SkipEvent, ZimParser
from zimswarm.models import EntryKind, RunState
from zimswarm.render.pages import PageRenderer

REFRESH = re.compile(r'http-equiv="refresh" content="0; url=([^"]*)"')


def _parser(reader, **kwargs) -> ZimParser:
    return ZimParser(reader, MetadataIndex(), renderer=PageRenderer(), **kwargs)


def _collect(parser: ZimParser) -> dict[str, bytes]:
    with parser.run() as stream:
        articles = {article.path: article.data for article in stream}
        stream.result()
    return articles


class TestParseStats:
    """Test ParseStats counters."""

    def test_defaults(self) -> None:
        stats = ParseStats()
        assert stats.visited == 0
        assert stats.emitted == 0
        assert stats.failed == 0

    def test_failed_sums_failures(self) -> None:
        stats = ParseStats(redirect_failures=2, fetch_failures=3)
        assert stats.failed == 5


class TestZimParser:
    """Test classification and emission of archive entries."""

    def test_emits_included_entries_in_order(self, reader: FakeReader) -> None:
        """Deleted entries and unknown namespaces are skipped."""
        parser = _parser(reader)
        with parser.run() as stream:
            paths = [article.path for article in stream]
            stats = stream.result()

        assert paths == ["A/home.html", "A/about.html", "-/style.css", "A/Start"]
        assert stats.emitted == 4
        assert stats.deleted == 1
        assert stats.excluded == 1
        assert stats.visited == 6
        assert parser.state is RunState.COMPLETED

    def test_payloads_are_passed_through(self, reader: FakeReader) -> None:
        articles = _collect(_parser(reader))

        assert articles["A/home.html"] == b"<html>home</html>"
        assert articles["-/style.css"] == b"body{}"

    def test_redirect_stub_targets_base_name(self, reader: FakeReader) -> None:
        """Redirect stubs point at the base name of the resolved target."""
        articles = _collect(_parser(reader))

        match = REFRESH.search(articles["A/Start"].decode("utf-8"))
        assert match is not None
        assert html.unescape(match.group(1)) == "home.html"

    def test_metadata_recorded_for_emitted_entries(self, reader: FakeReader) -> None:
        index = MetadataIndex()
        parser = ZimParser(reader, index, renderer=PageRenderer())
        emitted = set(_collect(parser))

        snapshot = index.snapshot()
        assert set(snapshot) == emitted
        assert snapshot["A/home.html"].title == "Home"
        assert snapshot["A/home.html"].mime_type == "text/html"
        assert snapshot["-/style.css"].mime_type == "text/css"
        assert "A/gone.html" not in snapshot
        assert "Z/unknown" not in snapshot

    def test_unresolvable_redirect_is_skipped(self) -> None:
        fake = FakeReader()
        fake.add("A/page.html", b"page")
        fake.add("A/Broken", kind=EntryKind.REDIRECT, redirect_to=99)
        events: list[SkipEvent] = []

        parser = _parser(fake, observer=events.append)
        articles = _collect(parser)

        assert list(articles) == ["A/page.html"]
        assert parser.stats.redirect_failures == 1
        assert len(events) == 1
        assert events[0].path == "A/Broken"
        assert events[0].reason == "redirect"

    def test_fetch_failure_is_skipped(self) -> None:
        fake = FakeReader()
        broken = fake.add("A/broken.html", b"")
        fake.add("A/ok.html", b"ok")
        del fake.payloads[broken]
        events: list[SkipEvent] = []

        parser = _parser(fake, observer=events.append)
        articles = _collect(parser)

        assert list(articles) == ["A/ok.html"]
        assert parser.stats.fetch_failures == 1
        assert events[0].reason == "fetch"
        assert events[0].index == broken

    def test_emits_recognized_minus_deleted(self) -> None:
        """An archive with R recognized entries, D of them deleted, emits R - D."""
        fake = FakeReader()
        for i in range(10):
            fake.add(f"A/page{i}.html", b"x")
        for i in range(3):
            fake.add(f"A/old{i}.html", kind=EntryKind.DELETED)
        for i in range(4):
            fake.add(f"Q/other{i}", b"x")

        parser = _parser(fake)
        articles = _collect(parser)

        assert len(articles) == 13 - 3

    def test_progress_reported_per_visited_entry(self, reader: FakeReader) -> None:
        progress = MagicMock()
        _collect(_parser(reader, on_progress=progress))

        assert progress.call_count == reader.entry_count
        progress.assert_called_with(reader.entry_count)

    def test_run_only_once(self, reader: FakeReader) -> None:
        parser = _parser(reader)
        _collect(parser)

        with pytest.raises(RuntimeError):
            parser.run()

    def test_initial_state(self, reader: FakeReader) -> None:
        assert _parser(reader).state is RunState.NOT_STARTED

    def test_render_error_aborts_run(self, reader: FakeReader) -> None:
        """A failing redirect stub aborts the run and surfaces the error."""
        renderer = MagicMock()
        renderer.render_redirect.side_effect = RenderError("boom")
        parser = ZimParser(reader, MetadataIndex(), renderer=renderer)

        received = []
        with parser.run() as stream:
            with pytest.raises(RenderError):
                for article in stream:
                    received.append(article.path)
            with pytest.raises(RenderError):
                stream.result()

        assert received == ["A/home.html", "A/about.html", "-/style.css"]
        assert parser.state is RunState.ABORTED
        assert isinstance(parser.error, RenderError)

    def test_close_stops_parser(self) -> None:
        """Closing the stream early releases a parser blocked on the handoff."""
        fake = FakeReader()
        for i in range(50):
            fake.add(f"A/page{i}.html", b"x")
        parser = _parser(fake)

        stream = parser.run()
        first = next(iter(stream))
        stream.close()

        assert first.path == "A/page0.html"
        assert parser.state is RunState.ABORTED
        assert parser.error is None
        assert parser.stats.emitted < 50

    def test_parser_does_not_run_ahead(self) -> None:
        """The parser waits for the consumer before producing more articles."""
        fake = FakeReader()
        for i in range(20):
            fake.add(f"A/page{i}.html", b"x")
        visited = threading.Event()
        counts: list[int] = []

        def on_progress(count: int) -> None:
            counts.append(count)
            visited.set()

        parser = _parser(fake, on_progress=on_progress)
        stream = parser.run()
        iterator = iter(stream)
        next(iterator)
        visited.wait(timeout=5)
        # One article consumed, one waiting in the handoff slot, one blocked in put.
        assert max(counts) <= 3
        stream.close()

    def test_unreadable_entry_does_not_abort_run(self) -> None:
        fake = FakeReader()
        fake.add("A/good.html", b"good")
        bad = fake.add("A/bad.html", b"bad")
        fake.add("A/last.html", b"last")
        fake.unreadable.add(bad)
        events: list[SkipEvent] = []

        parser = _parser(fake, observer=events.append)
        articles = _collect(parser)

        assert list(articles) == ["A/good.html", "A/last.html"]
        assert parser.state is RunState.COMPLETED
        assert parser.stats.visited == 3
        assert parser.stats.fetch_failures == 1
        assert events[0].index == bad
        assert events[0].path == ""
        assert events[0].reason == "fetch"

    def test_redirect_to_unreadable_entry_is_skipped(self) -> None:
        fake = FakeReader()
        fake.add("A/Alias", kind=EntryKind.REDIRECT, redirect_to=1)
        fake.add("A/target.html", b"target")
        fake.add("A/other.html", b"other")
        fake.unreadable.add(1)
        events: list[SkipEvent] = []

        parser = _parser(fake, observer=events.append)
        with parser.run() as stream:
            paths = [article.path for article in stream]
            stats = stream.result()

        assert paths == ["A/other.html"]
        assert stats.fetch_failures == 1
        assert stats.redirect_failures == 1
        redirect_events = [event for event in events if event.reason == "redirect"]
        assert len(redirect_events) == 1
        assert redirect_events[0].path == "A/Alias"
        assert isinstance(redirect_events[0].error, RedirectResolutionError)
