"""Shared fakes for store tests."""

import asyncio
import base64
import copy
import json

import pytest

from recipebox.config import StoreSettings
from recipebox.models import TransportError
from recipebox.store.keys import recipe_filename


class FakeTimer:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTransport:
    """In-memory recipe directory with failure injection."""

    def __init__(self, recipes=None):
        self.documents = {}
        for recipe in recipes or []:
            self.documents[recipe_filename(recipe["name"])] = copy.deepcopy(recipe)
        self.extra_listing = []
        self.failing = set()
        self.fail_listing = False
        self.write_failures = 0
        self.accept_writes = True
        self.delays = {}
        self.calls = []
        self.writes = []
        self.deletes = []

    async def _enter(self, call, identifier=None):
        self.calls.append(f"{call}:{identifier}" if identifier else call)
        delay = self.delays.get(identifier, 0)
        if delay:
            await asyncio.sleep(delay)

    async def list_files(self):
        await self._enter("list_files")
        if self.fail_listing:
            raise TransportError(503, "listing unavailable")
        listing = [{"type": "file", "name": name} for name in self.documents]
        return listing + self.extra_listing

    def _document(self, identifier):
        if identifier in self.failing:
            raise TransportError(500, f"{identifier} is broken")
        if identifier not in self.documents:
            raise TransportError(404, f"{identifier} not found")
        return copy.deepcopy(self.documents[identifier])

    async def fetch_document(self, identifier):
        await self._enter("fetch_document", identifier)
        return self._document(identifier)

    async def fetch_encoded_document(self, identifier):
        await self._enter("fetch_encoded_document", identifier)
        document = self._document(identifier)
        body = json.dumps(document, ensure_ascii=False).encode("utf-8")
        return {"sha": "abc123", "content": base64.b64encode(body).decode("ascii")}

    async def document_exists(self, identifier):
        await self._enter("document_exists", identifier)
        return identifier in self.documents

    async def write_document(self, identifier, content):
        await self._enter("write_document", identifier)
        if self.write_failures:
            self.write_failures -= 1
            raise TransportError(502, f"write of {identifier} failed")
        self.writes.append((identifier, copy.deepcopy(content)))
        if self.accept_writes:
            self.documents[identifier] = copy.deepcopy(content)
        return self.accept_writes

    async def delete_document(self, identifier):
        await self._enter("delete_document", identifier)
        if self.write_failures:
            self.write_failures -= 1
            raise TransportError(502, f"delete of {identifier} failed")
        self.deletes.append(identifier)
        if self.accept_writes:
            self.documents.pop(identifier, None)
        return self.accept_writes


CZECH_RECIPES = [
    {"name": "Guláš", "ingredients": [{"text": "500 g hovězí kližky"}], "servings": 4},
    {"name": "Palačinky", "ingredients": [{"text": "250 g mouky"}], "servings": 6},
    {"name": "Šťáva z arónie", "ingredients": [{"text": "1 kg arónie"}], "servings": 2},
    {"name": "Hovězí guláš", "ingredients": [{"text": "1 kg hovězího"}], "servings": 8},
    {"name": "Česnečka", "ingredients": [{"text": "1 hlávka česneku"}], "servings": 4},
    {"name": "Svíčková", "ingredients": [{"text": "800 g svíčkové"}], "servings": 6},
    {"name": "Řízek", "ingredients": [{"text": "4 plátky vepřového"}], "servings": 2},
    {"name": "Knedlíky", "ingredients": [{"text": "500 g mouky"}], "servings": 8},
    {"name": "Bramboráky", "ingredients": [{"text": "1 kg brambor"}], "servings": 4},
    {"name": "Smažený sýr", "ingredients": [{"text": "4 plátky sýra"}], "servings": 2},
    {"name": "Goulash soup", "ingredients": [{"text": "1 tbsp paprika"}], "servings": 6},
    {"name": "Apple strudel", "ingredients": [{"text": "4 apples"}], "servings": 8},
    {"name": "Potato dumplings", "ingredients": [{"text": "1 kg potatoes"}], "servings": 6},
]


@pytest.fixture()
def anyio_backend():
    return "asyncio"


@pytest.fixture()
def timer():
    return FakeTimer()


@pytest.fixture()
def settings():
    return StoreSettings(
        cache_ttl_seconds=300,
        direct_timeout=0.2,
        encoded_timeout=0.2,
        verified_timeout=0.2,
        sync_delay_seconds=0,
        retry_delay_seconds=0,
        max_retries=3,
    )


@pytest.fixture()
def transport():
    return FakeTransport(CZECH_RECIPES)
