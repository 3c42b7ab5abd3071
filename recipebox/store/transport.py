"""Capabilities the store needs from a remote document source."""

from typing import Any, Protocol


class RecipeTransport(Protocol):
    """A remote directory of JSON recipe documents.

    Identifiers are filenames such as ``"gulas.json"``. Failures are reported
    by raising ``TransportError`` carrying the status code when there is one.
    """

    async def list_files(self) -> list[dict[str, Any]]:
        """Directory listing; each item has at least ``type`` and ``name``."""
        ...

    async def fetch_document(self, identifier: str) -> dict[str, Any]:
        """The parsed JSON document."""
        ...

    async def fetch_encoded_document(self, identifier: str) -> dict[str, Any]:
        """An envelope whose ``content`` field is the base64-encoded JSON document."""
        ...

    async def write_document(self, identifier: str, content: dict[str, Any]) -> bool:
        ...

    async def delete_document(self, identifier: str) -> bool:
        """Remove the document; deleting one that is already gone succeeds."""
        ...

    async def document_exists(self, identifier: str) -> bool:
        ...
