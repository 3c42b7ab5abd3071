"""Fetch recipe documents through an ordered chain of retrieval strategies."""

import asyncio
import base64
import binascii
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Sequence
from typing import Any, TypeVar

from pydantic import ValidationError

from recipebox.config import StoreSettings
from recipebox.models import (
    DiscoveryError,
    RecipeError,
    RemoteFile,
    RetrievalError,
    TransportError,
)
from recipebox.store.cache import RecipeCache
from recipebox.store.keys import recipe_filename, recipe_key
from recipebox.store.transport import RecipeTransport

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def fetch_with_timeout(awaitable: Awaitable[T], timeout: float, label: str) -> T:
    """Await ``awaitable`` for at most ``timeout`` seconds.

    The losing call is cancelled, so a late response has no effect.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError:
        raise TransportError(None, f"{label} timed out after {timeout:g}s") from None


class RetrievalStrategy(ABC):
    """One way of getting a document out of the transport."""

    name: str

    def __init__(self, timeout: float):
        self.timeout = timeout

    @abstractmethod
    async def retrieve(self, transport: RecipeTransport, identifier: str) -> dict[str, Any]:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(timeout={self.timeout})"


class DirectStrategy(RetrievalStrategy):
    """Plain JSON document fetch."""

    name = "direct"

    async def retrieve(self, transport, identifier):
        return await transport.fetch_document(identifier)


class EncodedStrategy(RetrievalStrategy):
    """Fetch a base64 envelope and decode it as UTF-8 JSON."""

    name = "encoded"

    async def retrieve(self, transport, identifier):
        envelope = await transport.fetch_encoded_document(identifier)
        try:
            raw = base64.b64decode(envelope["content"])
            return json.loads(raw.decode("utf-8"))
        except (KeyError, TypeError, binascii.Error, UnicodeDecodeError, ValueError) as e:
            raise TransportError(None, f"Undecodable payload for {identifier}: {e}") from e


class VerifiedStrategy(RetrievalStrategy):
    """Check that the document exists before fetching it."""

    name = "verified"

    async def retrieve(self, transport, identifier):
        if not await transport.document_exists(identifier):
            raise TransportError(404, f"{identifier} does not exist")
        return await transport.fetch_document(identifier)


def default_strategies(settings: StoreSettings) -> list[RetrievalStrategy]:
    return [
        DirectStrategy(settings.direct_timeout),
        EncodedStrategy(settings.encoded_timeout),
        VerifiedStrategy(settings.verified_timeout),
    ]


class RecipeLoader:
    """Loads recipe documents, reading from and writing through to the cache.

    Every fetch is stamped with a per-key generation. ``abandon`` moves the
    generation on, so a fetch that was already running when its key was
    updated or invalidated returns its result without caching it.
    """

    def __init__(
        self,
        transport: RecipeTransport,
        cache: RecipeCache,
        strategies: Sequence[RetrievalStrategy] | None = None,
        settings: StoreSettings | None = None,
    ):
        self.transport = transport
        self.cache = cache
        if strategies is None:
            strategies = default_strategies(settings or StoreSettings())
        self.strategies = list(strategies)
        if not self.strategies:
            raise ValueError("RecipeLoader needs at least one retrieval strategy")
        self._generations: dict[str, int] = {}
        self._epoch = 0
        self._filenames: dict[str, str] = {}

    def _stamp(self, key: str) -> tuple[int, int]:
        return (self._epoch, self._generations.get(key, 0))

    def abandon(self, key: str | None = None) -> None:
        """Make in-flight fetches of ``key`` (or of every key) stale."""
        if key is None:
            self._epoch += 1
        else:
            self._generations[key] = self._generations.get(key, 0) + 1

    def filename_for(self, key: str) -> str:
        """The remote filename of ``key``: as listed when known, else derived."""
        key = recipe_key(key)
        return self._filenames.get(key) or recipe_filename(key)

    def forget(self, key: str) -> None:
        self._filenames.pop(recipe_key(key), None)

    async def discover(self) -> list[str]:
        """Keys of every recipe document the transport lists.

        The listed filename of each key is remembered, so later fetches and
        writes address the document exactly as the remote names it.
        """
        try:
            listing = await self.transport.list_files()
            items = list(listing)
        except Exception as e:
            logger.warning("Recipe discovery failed: %s", e)
            raise DiscoveryError(f"Couldn't list recipe documents: {e}") from e

        keys: list[str] = []
        for item in items:
            try:
                remote = RemoteFile.model_validate(item)
            except ValidationError:
                logger.warning("Skipping malformed listing item: %r", item)
                continue
            if not remote.is_recipe_document:
                continue
            key = recipe_key(remote.name)
            if not key:
                logger.warning("Skipping %s: name yields no recipe key", remote.name)
                continue
            if key in keys:
                logger.warning(
                    "Skipping %s: key %s already used by %s",
                    remote.name,
                    key,
                    self._filenames[key],
                )
                continue
            self._filenames[key] = remote.name
            keys.append(key)
        logger.info("Discovered %d recipe documents", len(keys))
        return keys

    async def load_one(self, key: str, force_refresh: bool = False) -> dict[str, Any]:
        key = recipe_key(key)
        if not force_refresh:
            entry = self.cache.get(key)
            if entry is not None:
                logger.debug("Cache hit for %s", key)
                return entry.data

        self.abandon(key)
        stamp = self._stamp(key)
        self.cache.sweep_expired()

        identifier = self.filename_for(key)
        document = await self._retrieve(key, identifier)

        if self._stamp(key) == stamp:
            self.cache.put(key, document)
        else:
            logger.info("Discarding superseded result for %s", key)
        return document

    async def _retrieve(self, key: str, identifier: str) -> dict[str, Any]:
        last_error: Exception | None = None
        for strategy in self.strategies:
            try:
                document = await fetch_with_timeout(
                    strategy.retrieve(self.transport, identifier),
                    strategy.timeout,
                    f"{strategy.name} fetch of {identifier}",
                )
            except Exception as e:
                logger.warning("Strategy %s failed for %s: %s", strategy.name, identifier, e)
                last_error = e
                continue
            if not isinstance(document, dict):
                logger.warning(
                    "Strategy %s returned %s for %s, expected an object",
                    strategy.name,
                    type(document).__name__,
                    identifier,
                )
                last_error = TransportError(None, f"{identifier} is not a JSON object")
                continue
            logger.info("Strategy %s succeeded for %s", strategy.name, identifier)
            return document

        raise RetrievalError(
            key,
            f"Couldn't load {identifier}: {last_error}",
            strategy=self.strategies[-1].name,
            status_code=getattr(last_error, "status_code", None),
        ) from last_error

    async def load_keyed(self, force_refresh: bool = False) -> dict[str, dict[str, Any]]:
        """Load every discovered recipe concurrently, keyed by recipe key.

        Discovery failures propagate. A recipe whose every strategy fails is
        logged and left out. Successful keys keep discovery order.
        """
        keys = await self.discover()
        results = await asyncio.gather(
            *(self._load_or_none(key, force_refresh) for key in keys)
        )
        loaded = {key: doc for key, doc in zip(keys, results) if doc is not None}
        if len(loaded) < len(keys):
            logger.warning("Loaded %d of %d recipes", len(loaded), len(keys))
        return loaded

    async def load_all(self, force_refresh: bool = False) -> list[dict[str, Any]]:
        return list((await self.load_keyed(force_refresh)).values())

    async def _load_or_none(self, key: str, force_refresh: bool) -> dict[str, Any] | None:
        try:
            return await self.load_one(key, force_refresh)
        except RecipeError as e:
            logger.warning("Skipping recipe %s: %s", key, e)
            return None
