"""Stateful recipe store: cache, remote loading, optimistic writes, events."""

import asyncio
import copy
import logging
import time
import uuid
from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel

from recipebox.config import StoreSettings
from recipebox.ingredients.export import RecipeIngredients, group_recipe_ingredients
from recipebox.ingredients.parser import vocabulary_for
from recipebox.models import (
    CacheStatus,
    PendingOperation,
    RemoteWriteError,
    RetrievalError,
    TransportError,
)
from recipebox.store.cache import RecipeCache
from recipebox.store.events import (
    CacheDelta,
    DeletedRecipe,
    EventBus,
    Handler,
    RepositoryEvent,
    SyncReport,
)
from recipebox.store.keys import recipe_key
from recipebox.store.loader import RecipeLoader
from recipebox.store.transport import RecipeTransport

logger = logging.getLogger(__name__)

Recipe = dict[str, Any]
Operation = Literal["create", "update", "delete"]


class SyncStrategy(str, Enum):
    IMMEDIATE = "immediate"  # the write completes before update() returns
    DEFERRED = "deferred"  # the write runs in the background after a delay


class SyncStatus(BaseModel):
    pending_count: int
    pending_operations: list[PendingOperation]
    cache_status: CacheStatus


class RecipeRepository:
    """The recipe set an application works against.

    Keeps an ordered in-memory recipe set whose keys always match the cache's
    keys. Every mutation updates both before any observer is notified.

    A remote write that fails after an optimistic apply is not rolled back:
    the local value stays, the operation stays pending with its error, and
    ``syncFailed`` is emitted. ``sync_all`` retries it; ``get_all`` with
    ``force_refresh`` replaces the local value with the remote one, except
    that a pending delete keeps its key out.
    """

    def __init__(
        self,
        transport: RecipeTransport,
        settings: StoreSettings | None = None,
        *,
        cache: RecipeCache | None = None,
        loader: RecipeLoader | None = None,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings or StoreSettings()
        self.transport = transport
        if cache is None:
            cache = RecipeCache(
                ttl=self.settings.cache_ttl_seconds,
                maxsize=self.settings.cache_maxsize,
                timer=timer,
            )
        self.cache = cache
        if loader is None:
            loader = RecipeLoader(transport, self.cache, settings=self.settings)
        self.loader = loader
        self.events = EventBus()

        self._recipes: dict[str, Recipe] = {}
        self._pending: dict[str, PendingOperation] = {}
        self._scheduled: set[str] = set()
        self._tasks: set[asyncio.Task] = set()
        self._load_task: asyncio.Task | None = None
        self._load_forced = False
        logger.info(
            "RecipeRepository ready (ttl=%ss, sync=%s, optimistic=%s)",
            self.settings.cache_ttl_seconds,
            self.settings.sync_strategy,
            self.settings.optimistic_updates,
        )

    # -- Events --

    def on(self, event: RepositoryEvent | str, handler: Handler) -> Callable[[], None]:
        return self.events.subscribe(event, handler)

    def off(self, event: RepositoryEvent | str, handler: Handler) -> None:
        self.events.unsubscribe(event, handler)

    def _notify(self, delta: CacheDelta) -> None:
        self.events.emit(RepositoryEvent.CACHE_UPDATED, delta)
        self.events.emit(RepositoryEvent.RECIPES_UPDATED, self._snapshot())

    # -- Reads --

    async def get_all(self, force_refresh: bool = False) -> list[Recipe]:
        """All recipes, from memory while fresh, otherwise from the remote source.

        Concurrent callers share one in-flight load. A forced refresh does not
        join a load that may serve cached documents: it waits for that load to
        finish and then starts its own.
        """
        if not force_refresh and self._is_fresh():
            logger.info("Returning %d cached recipes", len(self._recipes))
            return self._snapshot()

        while force_refresh and self._load_task is not None and not self._load_forced:
            logger.debug("Forced refresh waiting for in-flight recipe load")
            await asyncio.wait([self._load_task])

        task = self._load_task
        if task is None or task.done():
            task = asyncio.ensure_future(self._refresh_all(force_refresh))
            task.add_done_callback(self._load_finished)
            self._load_task = task
            self._load_forced = force_refresh
        else:
            logger.debug("Joining in-flight recipe load")
        return copy.deepcopy(await asyncio.shield(task))

    async def get(self, key: str, force_refresh: bool = False) -> Recipe | None:
        """One recipe, or None when it does not exist or cannot be loaded."""
        key = recipe_key(key)
        if not force_refresh and key in self._recipes and self.cache.has_fresh(key):
            return copy.deepcopy(self._recipes[key])
        if key in self._deleted_keys():
            logger.info("Recipe %s is deleted locally, delete not yet synced", key)
            return None

        identifier = self.loader.filename_for(key)
        try:
            if not await self.transport.document_exists(identifier):
                logger.info("Recipe %s does not exist", key)
                return None
            document = await self.loader.load_one(key, force_refresh)
        except (TransportError, RetrievalError) as e:
            logger.warning("Failed to load recipe %s: %s", key, e)
            return None

        removed = self._drop_uncached()
        entry = self.cache.get(key)
        if entry is not None:
            self._recipes[key] = entry.data
            self._notify(CacheDelta(added=[key], removed=removed))
        elif removed:
            self._notify(CacheDelta(removed=removed))
        return document

    def get_cache_metadata(self) -> CacheStatus:
        return self.cache.status()

    def sync_status(self) -> SyncStatus:
        return SyncStatus(
            pending_count=len(self._pending),
            pending_operations=[op.model_copy() for op in self._pending.values()],
            cache_status=self.cache.status(),
        )

    def export_groups(self, selected_keys: Iterable[str]) -> list[RecipeIngredients]:
        """Ingredient export groups for the selected recipes."""
        return group_recipe_ingredients(
            self._recipes,
            [recipe_key(k) for k in selected_keys],
            vocabulary_for(self.settings.locale),
        )

    def _is_fresh(self) -> bool:
        return bool(self._recipes) and all(
            self.cache.has_fresh(key) for key in self._recipes
        )

    def _snapshot(self) -> list[Recipe]:
        return [copy.deepcopy(recipe) for recipe in self._recipes.values()]

    def _load_finished(self, task: asyncio.Task) -> None:
        if self._load_task is task:
            self._load_task = None
            self._load_forced = False
        if not task.cancelled():
            # Mark the exception retrieved; callers see it through shield().
            task.exception()

    async def _refresh_all(self, force_refresh: bool) -> list[Recipe]:
        loaded = await self.loader.load_keyed(force_refresh)

        # The cache holds the authoritative value: a key updated while its fetch
        # was running keeps the update, an invalidated one is dropped. Keys
        # deleted locally stay out until the remote delete has synced.
        deleted = self._deleted_keys()
        recipes: dict[str, Recipe] = {}
        for key in loaded:
            if key in deleted:
                continue
            entry = self.cache.get(key)
            if entry is not None:
                recipes[key] = entry.data
        removed = [key for key in self.cache.keys() if key not in recipes]
        for key in removed:
            self.cache.invalidate(key)

        self._recipes = recipes
        logger.info("Loaded %d recipes", len(recipes))
        self._notify(CacheDelta(added=list(recipes), removed=removed))
        return self._snapshot()

    def _deleted_keys(self) -> set[str]:
        return {
            op.key for op in self._pending.values() if op.kind == "delete" and op.applied
        }

    def _drop_uncached(self) -> list[str]:
        """Remove recipes whose cache entries were swept or evicted."""
        gone = [key for key in self._recipes if key not in self.cache]
        for key in gone:
            del self._recipes[key]
        return gone

    # -- Writes --

    async def update(
        self,
        key: str,
        data: Recipe,
        sync_strategy: SyncStrategy | str | None = None,
        optimistic: bool | None = None,
    ) -> Recipe:
        """Replace the recipe stored under ``key`` and write it to the remote.

        With ``optimistic`` the new value is applied and announced before the
        remote write. ``IMMEDIATE`` raises RemoteWriteError if that write
        fails; ``DEFERRED`` retries in the background.
        """
        await self._write("update", recipe_key(key), data, sync_strategy, optimistic)
        return copy.deepcopy(data)

    async def create(
        self,
        data: Recipe,
        sync_strategy: SyncStrategy | str | None = None,
        optimistic: bool | None = None,
    ) -> Recipe:
        key = recipe_key(str(data.get("name") or ""))
        if not key:
            raise ValueError("A new recipe needs a name that yields a key")
        await self._write("create", key, data, sync_strategy, optimistic)
        return copy.deepcopy(data)

    async def delete(
        self,
        key: str,
        sync_strategy: SyncStrategy | str | None = None,
        optimistic: bool | None = None,
    ) -> None:
        """Remove the recipe stored under ``key`` locally and from the remote.

        Same policy as ``update``: with ``optimistic`` the recipe leaves the
        recipe set and the cache before the remote delete, and a failed delete
        is not rolled back. Until the delete syncs, reloads keep the key out.
        """
        key = recipe_key(key)
        if not key:
            raise ValueError("delete() needs a recipe key")
        await self._write("delete", key, {}, sync_strategy, optimistic)

    async def _write(
        self,
        kind: Operation,
        key: str,
        data: Recipe,
        sync_strategy: SyncStrategy | str | None,
        optimistic: bool | None,
    ) -> None:
        strategy = SyncStrategy(sync_strategy or self.settings.sync_strategy)
        if optimistic is None:
            optimistic = self.settings.optimistic_updates
        logger.info(
            "%s %s (optimistic=%s, sync=%s)", kind.capitalize(), key, optimistic, strategy.value
        )

        op = self._enqueue(kind, key, data)
        if optimistic:
            self._apply(op)

        if strategy is SyncStrategy.IMMEDIATE:
            await self._sync(op)
        else:
            self._schedule(op)

    def _enqueue(self, kind: Operation, key: str, data: Recipe) -> PendingOperation:
        for op_id, pending in list(self._pending.items()):
            if pending.key == key:
                logger.info("Superseding pending %s of %s", pending.kind, key)
                del self._pending[op_id]
        op = PendingOperation(
            id=uuid.uuid4().hex,
            kind=kind,
            key=key,
            data=copy.deepcopy(data),
            timestamp=time.time(),
        )
        self._pending[op.id] = op
        return op

    def _apply_local(self, key: str, data: Recipe) -> None:
        """Put ``data`` at the front of the recipe set and into the cache."""
        self.loader.abandon(key)
        self.cache.put(key, data)
        rest = {k: v for k, v in self._recipes.items() if k != key}
        self._recipes = {key: copy.deepcopy(data), **rest}
        evicted = self._drop_uncached()
        self._notify(CacheDelta(added=[key], removed=evicted))

    def _remove_local(self, key: str) -> None:
        """Drop ``key`` from the recipe set and the cache."""
        self.loader.abandon(key)
        previous = self._recipes.pop(key, None)
        removed = self.cache.invalidate(key)
        self.events.emit(
            RepositoryEvent.RECIPE_DELETED,
            DeletedRecipe(key=key, data=copy.deepcopy(previous)),
        )
        self._notify(CacheDelta(removed=removed))

    def _apply(self, op: PendingOperation) -> None:
        if op.kind == "delete":
            self._remove_local(op.key)
        else:
            self._apply_local(op.key, op.data)
        op.applied = True

    async def _sync(self, op: PendingOperation) -> None:
        op.attempts += 1
        identifier = self.loader.filename_for(op.key)
        try:
            if op.kind == "delete":
                accepted = await self.transport.delete_document(identifier)
            else:
                accepted = await self.transport.write_document(identifier, op.data)
        except TransportError as e:
            self._sync_failed(op, e.message)
            raise RemoteWriteError(op.key, e.message, status_code=e.status_code) from e
        if not accepted:
            message = f"Remote rejected {op.kind} of {identifier}"
            self._sync_failed(op, message)
            raise RemoteWriteError(op.key, message)

        current = self._pending.pop(op.id, None)
        if op.kind == "delete":
            self.loader.forget(op.key)
        if current is not None and not op.applied:
            self._apply(op)
        logger.info("Synced %s of %s (attempt %d)", op.kind, op.key, op.attempts)
        self.events.emit(
            RepositoryEvent.SYNC_COMPLETED,
            SyncReport(key=op.key, kind=op.kind, attempts=op.attempts),
        )

    def _sync_failed(self, op: PendingOperation, message: str) -> None:
        op.last_error = message
        logger.warning(
            "Remote %s of %s failed (attempt %d): %s", op.kind, op.key, op.attempts, message
        )
        self.events.emit(
            RepositoryEvent.SYNC_FAILED,
            SyncReport(key=op.key, kind=op.kind, attempts=op.attempts, error=message),
        )

    def _schedule(self, op: PendingOperation) -> None:
        self._scheduled.add(op.id)
        task = asyncio.get_running_loop().create_task(self._deferred_sync(op))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _deferred_sync(self, op: PendingOperation) -> None:
        try:
            await asyncio.sleep(self.settings.sync_delay_seconds)
            for attempt in range(1, self.settings.max_retries + 1):
                if op.id not in self._pending:
                    logger.info("Dropping superseded %s of %s", op.kind, op.key)
                    return
                try:
                    await self._sync(op)
                    return
                except RemoteWriteError:
                    if attempt < self.settings.max_retries:
                        delay = self.settings.retry_delay_seconds * 2 ** (attempt - 1)
                        logger.info("Retrying %s of %s in %ss", op.kind, op.key, delay)
                        await asyncio.sleep(delay)
            logger.warning(
                "Giving up on %s of %s after %d attempts", op.kind, op.key, op.attempts
            )
        finally:
            self._scheduled.discard(op.id)

    async def sync_all(self) -> None:
        """Retry every pending write that no background task is handling."""
        ops = [op for op in self._pending.values() if op.id not in self._scheduled]
        if not ops:
            return
        results = await asyncio.gather(*(self._sync(op) for op in ops), return_exceptions=True)
        failed = []
        for op, result in zip(ops, results):
            if isinstance(result, RemoteWriteError):
                failed.append(op.key)
            elif isinstance(result, BaseException):
                raise result
        if failed:
            raise RemoteWriteError(
                ", ".join(failed), f"{len(failed)} of {len(ops)} operations failed to sync"
            )

    async def wait_idle(self) -> None:
        """Wait until background writes have finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # -- Invalidation --

    def invalidate(self, key: str | None = None) -> None:
        """Drop one recipe, or all of them, from memory and from the cache."""
        if key is None:
            self.loader.abandon()
            removed = self.cache.invalidate()
            self._recipes = {}
            self._notify(CacheDelta(removed=removed, cleared=True))
            return

        key = recipe_key(key)
        self.loader.abandon(key)
        removed = self.cache.invalidate(key)
        self._recipes.pop(key, None)
        if removed:
            self._notify(CacheDelta(removed=removed))
