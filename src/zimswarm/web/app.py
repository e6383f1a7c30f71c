"""FastAPI application previewing a converted tar archive locally."""

from __future__ import annotations

import logging
import mimetypes
import tarfile
import threading
from pathlib import Path

from fastapi import FastAPI, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel

from zimswarm.converter import ERROR_PAGE_NAME, INDEX_PAGE_NAME

LOGGER = logging.getLogger(__name__)


class ArchiveInfo(BaseModel):
    file: str
    member_count: int
    has_index_page: bool
    has_error_page: bool


class TarArchive:
    """Read-only access to the members of a converted tar."""

    def __init__(self, tar_path: Path) -> None:
        self.path = Path(tar_path)
        self._lock = threading.Lock()
        self._tar = tarfile.open(self.path, mode="r")
        # Appended pages come last and win over earlier members with the same name.
        self._members = {member.name: member for member in self._tar.getmembers() if member.isfile()}

    def __contains__(self, name: object) -> bool:
        return name in self._members

    def __len__(self) -> int:
        return len(self._members)

    def read(self, name: str) -> bytes:
        member = self._members[name]
        with self._lock:
            handle = self._tar.extractfile(member)
            if handle is None:
                raise KeyError(name)
            return handle.read()

    def close(self) -> None:
        self._tar.close()


def _media_type(name: str) -> str:
    media_type, _ = mimetypes.guess_type(name)
    if media_type is None and not Path(name).suffix:
        # ZIM article paths usually carry no extension.
        return "text/html"
    return media_type or "application/octet-stream"


def create_app(tar_path: Path) -> FastAPI:
    """Build an app serving every member of ``tar_path`` at its own path."""
    archive = TarArchive(tar_path)
    app = FastAPI(title="zimswarm preview", version="0.1.0")
    app.state.archive = archive

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        archive.close()

    @app.get("/_info")
    async def info() -> ArchiveInfo:
        return ArchiveInfo(
            file=archive.path.name,
            member_count=len(archive),
            has_index_page=INDEX_PAGE_NAME in archive,
            has_error_page=ERROR_PAGE_NAME in archive,
        )

    @app.get("/")
    async def index() -> Response:
        return await serve_member(INDEX_PAGE_NAME)

    @app.get("/{name:path}")
    async def serve_member(name: str) -> Response:
        if name in archive:
            return Response(content=archive.read(name), media_type=_media_type(name))
        LOGGER.debug("Missing member requested: %s", name)
        if ERROR_PAGE_NAME in archive:
            return Response(
                content=archive.read(ERROR_PAGE_NAME), status_code=404, media_type="text/html"
            )
        raise HTTPException(status_code=404, detail=f"Not found: {name}")

    return app
