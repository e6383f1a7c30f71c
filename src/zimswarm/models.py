"""Core zimswarm data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional


class Namespace(str, Enum):
    """ZIM namespaces that are carried into the converted output."""

    ASSET = "-"
    ARTICLE = "A"
    MEDIA = "I"
    ZIM_METADATA = "M"
    SEARCH_INDEX = "X"

    @classmethod
    def from_code(cls, code: str) -> Optional["Namespace"]:
        """Return the namespace for ``code`` or ``None`` when it is excluded."""
        try:
            return cls(code)
        except ValueError:
            return None


class EntryKind(str, Enum):
    NORMAL = "normal"
    REDIRECT = "redirect"
    DELETED = "deleted"


class RunState(str, Enum):
    """Lifecycle of a single conversion run."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass(frozen=True, slots=True)
class ArchiveEntry:
    """Directory entry metadata as reported by an archive reader."""

    index: int
    full_url: str
    namespace: str
    title: str
    mime_type: str
    kind: EntryKind = EntryKind.NORMAL


@dataclass(frozen=True, slots=True)
class Article:
    """Converted resource ready to be written: a logical path and its bytes."""

    path: str
    data: bytes


@dataclass(frozen=True, slots=True)
class IndexEntry:
    """Descriptive metadata recorded for every emitted article."""

    path: str
    metadata: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def title(self) -> str:
        return self.metadata.get("Title", "")

    @property
    def mime_type(self) -> str:
        return self.metadata.get("MimeType", "")
