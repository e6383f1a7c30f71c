"""Contract for the storage network client and the root reference it yields.

zimswarm does not ship a network client. Anything implementing
:class:`UploadClient` (for instance a thin wrapper around a Bee node's
``/bytes`` endpoint) can be handed to :meth:`Converter.publish`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO, Iterator, Optional, Protocol


@dataclass(frozen=True, slots=True)
class UploadOptions:
    # Pinned content is exempt from the node's garbage collection.
    pin: bool = False


class UploadClient(Protocol):
    def upload(self, data: BinaryIO, options: UploadOptions) -> str:
        """Upload ``data`` and return its content address.

        Raises :class:`~zimswarm.errors.UploadError` on failure.
        """
        ...

    def download(self, address: str) -> Iterator[bytes]:
        """Stream the content stored at ``address``.

        Raises :class:`~zimswarm.errors.DownloadError` on failure.
        """
        ...


class RootReference:
    """Content address of the uploaded output; empty until the upload completes."""

    def __init__(self) -> None:
        self._address: Optional[str] = None

    @property
    def address(self) -> Optional[str]:
        return self._address

    def is_empty(self) -> bool:
        return self._address is None

    def set(self, address: str) -> None:
        if not address:
            raise ValueError("Root reference cannot be empty")
        if self._address is not None:
            raise ValueError(f"Root reference already set to {self._address}")
        self._address = address

    def __str__(self) -> str:
        return self._address or ""
