from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ParsedIngredient(BaseModel):
    """Structured ingredient data extracted from a free-text ingredient line."""

    text: str
    amount: float | None = Field(default=None, ge=0)
    unit: str | None = None
    ingredient_name: str


class NormalizedIngredient(ParsedIngredient):
    """A parsed ingredient plus the export flag carried by recipe documents."""

    export_default: bool = True


class CacheEntry(BaseModel):
    key: str
    data: dict[str, Any]
    timestamp: float


class CacheEntryStatus(BaseModel):
    key: str
    age_seconds: float
    remaining_seconds: float
    expired: bool


class CacheStatus(BaseModel):
    total_entries: int
    valid_entries: int
    expired_entries: int
    ttl_seconds: float
    entries: list[CacheEntryStatus]


class RemoteFile(BaseModel):
    """One item of a remote directory listing."""

    model_config = ConfigDict(extra="ignore")

    type: str
    name: str

    @property
    def is_recipe_document(self) -> bool:
        return self.type == "file" and self.name.endswith(".json")


class PendingOperation(BaseModel):
    """A remote write that has not been confirmed yet."""

    id: str
    kind: Literal["create", "update", "delete"]
    key: str
    data: dict[str, Any] = {}  # empty for deletes
    timestamp: float
    attempts: int = 0
    last_error: str | None = None
    # True once the value has been applied to the local recipe set
    applied: bool = False

    @field_validator("key")
    @classmethod
    def key_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("operation key must not be empty")
        return value


class RecipeError(Exception):
    def __init__(self, error_type: str, message: str):
        self.error_type = error_type
        self.message = message
        super().__init__(message)


class TransportError(RecipeError):
    """Raised by transports when the remote source answers badly or not at all."""

    def __init__(self, status_code: int | None, message: str):
        self.status_code = status_code
        super().__init__("transport", message)


class DiscoveryError(RecipeError):
    def __init__(self, message: str):
        super().__init__("discovery", message)


class RetrievalError(RecipeError):
    def __init__(
        self,
        key: str,
        message: str,
        strategy: str | None = None,
        status_code: int | None = None,
    ):
        self.key = key
        self.strategy = strategy
        self.status_code = status_code
        super().__init__("retrieval", message)


class RemoteWriteError(RecipeError):
    def __init__(self, key: str, message: str, status_code: int | None = None):
        self.key = key
        self.status_code = status_code
        super().__init__("remote_write", message)
