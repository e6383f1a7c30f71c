"""Shared fixtures."""

from __future__ import annotations

import pytest

from tests.fakes import FakeReader
from zimswarm.models import EntryKind


@pytest.fixture
def reader() -> FakeReader:
    """Small archive: two articles, a stylesheet, a redirect and excluded entries."""
    fake = FakeReader()
    home = fake.add("A/home.html", b"<html>home</html>", title="Home")
    fake.add("A/about.html", b"<html>about</html>", title="About")
    fake.add("-/style.css", b"body{}", title="style.css", mime_type="text/css")
    fake.add("A/Start", kind=EntryKind.REDIRECT, redirect_to=home, title="Start")
    fake.add("A/gone.html", kind=EntryKind.DELETED)
    fake.add("Z/unknown", b"ignored")
    fake.main_index = home
    return fake
