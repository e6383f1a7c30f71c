"""Application configuration defaults."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

OUTPUT_MODES = ("tar", "dir")
INDEX_PAGES = ("search", "redirect", "none")


@dataclass(slots=True)
class AppConfig:
    output_dir: Path = Path("output")
    mode: str = "tar"
    index_page: str = "search"
    error_page: bool = True

    def __post_init__(self) -> None:
        if self.mode not in OUTPUT_MODES:
            raise ValueError(f"Unknown output mode: {self.mode!r} (expected one of {OUTPUT_MODES})")
        if self.index_page not in INDEX_PAGES:
            raise ValueError(
                f"Unknown index page: {self.index_page!r} (expected one of {INDEX_PAGES})"
            )
        self.output_dir = Path(self.output_dir)

    def resolve_output_dir(self, base_dir: Path | None = None) -> Path:
        if self.output_dir.is_absolute() or base_dir is None:
            return self.output_dir
        return base_dir / self.output_dir

    def resolve_output_path(self, zim_path: Path, base_dir: Path | None = None) -> Path:
        """Return the tar file or directory the given archive converts into."""
        root = self.resolve_output_dir(base_dir)
        stem = Path(zim_path).stem
        if self.mode == "tar":
            return root / f"{stem}.tar"
        return root / stem
