"""pytest configuration for nimbus_db tests."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import pytest
from loguru import logger

from nimbus_db.api import Datastore, TransportResponse
from sample_models import Author, Book, Library


@dataclass
class SentRequest:
    """A request recorded by `FakeTransport`."""

    verb: str
    path: str
    body: Any
    headers: dict[str, str]


class FakeTransport:
    """In-memory transport returning queued responses in order."""

    def __init__(self) -> None:
        self.requests: list[SentRequest] = []
        self.responses: list[TransportResponse] = []

    def queue(
        self,
        body: Any = None,
        status: int = 200,
        headers: dict[str, str] | None = None,
    ) -> None:
        raw = None if body is None else json.dumps(body)
        self.responses.append(TransportResponse(status, headers or {}, raw))

    def send(self, verb, path, body, headers) -> TransportResponse:
        self.requests.append(
            SentRequest(verb, path, None if body is None else json.loads(body), dict(headers))
        )
        if self.responses:
            return self.responses.pop(0)
        return TransportResponse(200, {}, None)

    @property
    def last(self) -> SentRequest:
        return self.requests[-1]


@pytest.fixture
def transport() -> FakeTransport:
    """Create a fake transport with no queued responses."""
    return FakeTransport()


@pytest.fixture
def datastore(transport) -> Datastore:
    """Create a datastore talking to the fake transport."""
    return Datastore(transport)


@pytest.fixture
def log_records():
    """Capture loguru records emitted during a test."""
    records = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)


@pytest.fixture
def author() -> Author:
    """Create an author that has not been saved."""
    return Author(name="Frank Herbert")


@pytest.fixture
def book(author) -> Book:
    """Create a book referencing an author."""
    return Book(title="Dune", pages=412, author=author, tags=["scifi", "classic"])


@pytest.fixture
def library() -> Library:
    """Create a library with two saved books."""
    first = Book(title="Dune")
    first.id = "b1"
    second = Book(title="Emma")
    second.id = "b2"
    lib = Library(name="Central", books=[first, second])
    lib.id = "l1"
    return lib
