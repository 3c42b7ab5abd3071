"""Typed publish/subscribe for repository change notifications."""

import logging
from collections import defaultdict
from collections.abc import Callable
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class RepositoryEvent(str, Enum):
    RECIPES_UPDATED = "recipesUpdated"  # payload: list of recipe documents
    CACHE_UPDATED = "cacheUpdated"  # payload: CacheDelta
    SYNC_COMPLETED = "syncCompleted"  # payload: SyncReport
    SYNC_FAILED = "syncFailed"  # payload: SyncReport
    RECIPE_DELETED = "recipeDeleted"  # payload: DeletedRecipe


class CacheDelta(BaseModel):
    added: list[str] = []
    removed: list[str] = []
    cleared: bool = False


class SyncReport(BaseModel):
    key: str
    kind: Literal["create", "update", "delete"]
    attempts: int
    error: str | None = None


class DeletedRecipe(BaseModel):
    key: str
    # last known document, None if it was never loaded
    data: dict[str, Any] | None = None


Handler = Callable[[Any], None]


class EventBus:
    def __init__(self) -> None:
        self._handlers: dict[RepositoryEvent, list[Handler]] = defaultdict(list)

    def subscribe(self, event: RepositoryEvent | str, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` and return a function that unregisters it."""
        kind = RepositoryEvent(event)
        self._handlers[kind].append(handler)
        return lambda: self.unsubscribe(kind, handler)

    def unsubscribe(self, event: RepositoryEvent | str, handler: Handler) -> None:
        handlers = self._handlers[RepositoryEvent(event)]
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event: RepositoryEvent, payload: Any) -> None:
        logger.debug("Emitting %s", event.value)
        for handler in list(self._handlers[event]):
            try:
                handler(payload)
            except Exception:
                logger.warning("Handler for %s raised", event.value, exc_info=True)
