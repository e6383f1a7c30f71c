"""Archive conversion pipeline."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from zimswarm.errors import OutputWriteError
from zimswarm.index.metadata import MetadataIndex
from zimswarm.index.parser import ParseStats, SkipEvent, ZimParser
from zimswarm.ingestion.zim_reader import ArchiveReader
from zimswarm.output.writers import append_tar_data, extract_to_directory, write_tar
from zimswarm.render.pages import IndexPageContext, PageRenderer
from zimswarm.upload.client import RootReference, UploadClient, UploadOptions

LOGGER = logging.getLogger(__name__)

INDEX_PAGE_NAME = "index.html"
ERROR_PAGE_NAME = "error.html"


class Converter:
    """Coordinates parsing an archive, writing its output and adding pages."""

    def __init__(
        self,
        reader: ArchiveReader,
        *,
        renderer: PageRenderer | None = None,
        observer: Optional[Callable[[SkipEvent], None]] = None,
        on_progress: Optional[Callable[[int], None]] = None,
    ) -> None:
        self.reader = reader
        self.renderer = renderer if renderer is not None else PageRenderer()
        self.observer = observer
        self.on_progress = on_progress
        self.index = MetadataIndex()
        self.root = RootReference()

    def _parser(self) -> ZimParser:
        return ZimParser(
            self.reader,
            self.index,
            renderer=self.renderer,
            observer=self.observer,
            on_progress=self.on_progress,
        )

    def convert_to_tar(self, tar_file: Path) -> ParseStats:
        """Convert the archive into a single tar file."""
        tar_file = Path(tar_file)
        try:
            tar_file.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OutputWriteError(f"Unable to create {tar_file.parent}: {exc}") from exc
        with self._parser().run() as stream:
            write_tar(tar_file, stream)
            return stream.result()

    def convert_to_directory(self, output_dir: Path) -> ParseStats:
        """Extract the converted archive into a directory tree."""
        with self._parser().run() as stream:
            extract_to_directory(Path(output_dir), stream)
            return stream.result()

    def make_redirect_index_page(self, tar_file: Path) -> None:
        """Add an ``index.html`` redirecting to the archive's main page."""
        data = self.renderer.render_main_redirect(self.reader)
        append_tar_data(Path(tar_file), INDEX_PAGE_NAME, data)

    def make_index_search_page(self, tar_file: Path) -> None:
        """Add an ``index.html`` listing every article, with a search box."""
        main_page = self.reader.main_page()
        context = IndexPageContext(
            source_file_name=self.reader.filename,
            total_article_count=self.reader.entry_count,
            metadata_snapshot=self.index.snapshot(),
            has_main_page=main_page is not None,
            main_page_url=main_page.full_url if main_page is not None else "",
        )
        append_tar_data(Path(tar_file), INDEX_PAGE_NAME, self.renderer.render_index(context))

    def make_error_page(self, tar_file: Path) -> None:
        data = self.renderer.render_error(self.reader.filename)
        append_tar_data(Path(tar_file), ERROR_PAGE_NAME, data)

    def publish(self, tar_file: Path, client: UploadClient, *, pin: bool = False) -> str:
        """Upload the converted tar and record its root reference."""
        with Path(tar_file).open("rb") as handle:
            address = client.upload(handle, UploadOptions(pin=pin))
        self.root.set(address)
        LOGGER.info("Uploaded %s as %s", tar_file, address)
        return address
