"""HTML page builders for redirect stubs, the landing page and the error page."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from importlib.resources import files
from typing import Any, Mapping, Optional

from jinja2 import Environment, FunctionLoader, TemplateError, select_autoescape

from zimswarm.errors import NoMainPageError, RenderError
from zimswarm.ingestion.zim_reader import ArchiveReader
from zimswarm.models import IndexEntry

LOGGER = logging.getLogger(__name__)

REDIRECT_TEMPLATE = "index-redirect.html"
SEARCH_TEMPLATE = "index-search.html"
ERROR_TEMPLATE = "error.html"


def _load_template(name: str) -> Optional[str]:
    template = files("zimswarm.render").joinpath("templates", name)
    if not template.is_file():
        return None
    return template.read_text(encoding="utf-8")


def build_environment() -> Environment:
    """Create the Jinja environment holding the packaged templates."""
    return Environment(
        loader=FunctionLoader(_load_template),
        autoescape=select_autoescape(["html"]),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


@dataclass(slots=True)
class IndexPageContext:
    source_file_name: str
    total_article_count: int
    metadata_snapshot: Mapping[str, IndexEntry] = field(default_factory=dict)
    has_main_page: bool = False
    main_page_url: str = ""


class PageRenderer:
    """Renders the auxiliary pages of a converted archive.

    Holds its own template environment; create one per conversion (or share
    one across conversions) instead of relying on module-level state.
    """

    def __init__(self, env: Environment | None = None) -> None:
        self.env = env if env is not None else build_environment()

    def _render(self, template_name: str, context: dict[str, Any]) -> bytes:
        try:
            template = self.env.get_template(template_name)
            return template.render(**context).encode("utf-8")
        except TemplateError as exc:
            raise RenderError(f"Error rendering {template_name}: {exc}") from exc

    def render_redirect(self, target_path: str) -> bytes:
        """Render a page that sends the viewer to ``target_path``."""
        return self._render(REDIRECT_TEMPLATE, {"main_url": target_path})

    def render_main_redirect(self, reader: ArchiveReader) -> bytes:
        """Render the top-level redirect to the archive's main page."""
        main_page = reader.main_page()
        if main_page is None:
            raise NoMainPageError(reader.filename)
        return self.render_redirect(main_page.full_url)

    def render_index(self, context: IndexPageContext) -> bytes:
        """Render the landing page with the article list and search box."""
        articles = [context.metadata_snapshot[path] for path in sorted(context.metadata_snapshot)]
        return self._render(
            SEARCH_TEMPLATE,
            {
                "file": context.source_file_name,
                "count": context.total_article_count,
                "articles": articles,
                "has_main_page": context.has_main_page,
                "main_url": context.main_page_url,
            },
        )

    def render_error(self, source_file_name: str) -> bytes:
        return self._render(ERROR_TEMPLATE, {"file": source_file_name})
