"""Save, fetch and query models through a pluggable transport.

`Datastore` builds requests from models and queries and applies the
responses back to the models. Everything that goes over the network is
delegated to a `Transport`, which is expected to handle connection
management, request signing and retries.

Examples
--------
>>> store = Datastore(transport)
>>> book = Book(title="Dune")
>>> store.save(book)
>>> book.id is not None
True
>>> store.query(Book, Query().field_is_greater_than("pages", 300))
[Book(title='Dune', ...)]
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping, MutableSequence
from typing import Any, NamedTuple, Protocol, TypeVar
from urllib.parse import quote

from loguru import logger

from nimbus_db.config import ClientConfig, default_config
from nimbus_db.constants import FieldKind
from nimbus_db.exceptions import TransportError, UsageError
from nimbus_db.models.base import Model, new_instance
from nimbus_db.models.metadata import FieldInfo, Registry, default_registry
from nimbus_db.models.schemas import RequestOptions
from nimbus_db.query.builder import Query
from nimbus_db.serialization.reconciler import Reconciler
from nimbus_db.serialization.selection import Selection
from nimbus_db.serialization.serializer import Serializer

__all__ = ["Datastore", "Transport", "TransportResponse"]

M = TypeVar("M", bound=Model)


class TransportResponse(NamedTuple):
    """Status, headers and raw body returned by a transport."""

    status: int
    headers: Mapping[str, str]
    body: str | bytes | None


class Transport(Protocol):
    """Sends one HTTP request.

    ``path`` already carries any URL-encoded query string.
    """

    def send(
        self, verb: str, path: str, body: str | None, headers: Mapping[str, str]
    ) -> TransportResponse: ...


def _header(headers: Mapping[str, str], name: str) -> str | None:
    lname = name.lower()
    for key, value in headers.items():
        if key.lower() == lname:
            return value
    return None


def _parse_total(content_range: str | None) -> int | None:
    """Total from a ``Content-Range: objects 0-0/42`` header."""
    if not content_range or "/" not in content_range:
        return None
    total = content_range.rsplit("/", 1)[1].strip()
    return int(total) if total.isdigit() else None


class Datastore:
    """
    High-level object store operations.

    Parameters
    ----------
    transport : Transport
        Sends requests
    config : ClientConfig, optional
        Header names and limits
    registry : Registry, optional
        Model metadata registry
    """

    def __init__(
        self,
        transport: Transport,
        config: ClientConfig | None = None,
        registry: Registry | None = None,
    ):
        self.transport = transport
        self.config = config or default_config
        self.registry = registry or default_registry
        self.serializer = Serializer(self.registry, config=self.config)
        self.reconciler = Reconciler(self.registry)

    # -- plumbing ---------------------------------------------------------

    def _send(
        self,
        verb: str,
        path: str,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> TransportResponse:
        payload = None if body is None else json.dumps(body)
        logger.debug(f"{verb} {path}")
        status, resp_headers, resp_body = self.transport.send(
            verb, path, payload, dict(headers or {})
        )
        return TransportResponse(status, resp_headers or {}, resp_body)

    def _request(
        self,
        verb: str,
        path: str,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> tuple[Mapping[str, str], Any]:
        response = self._send(verb, path, body, headers)
        raw = response.body
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        if response.status >= 400:
            raise TransportError(verb, path, response.status, raw)
        data = json.loads(raw) if raw else None
        return response.headers, data

    def _options(self, options: RequestOptions | None) -> RequestOptions:
        options = options or RequestOptions()
        if options.expand_depth > self.config.max_expand_depth:
            raise UsageError(
                f"Expand depth must be at most {self.config.max_expand_depth}, "
                f"got {options.expand_depth}"
            )
        return options

    @staticmethod
    def _object_path(obj: Model) -> str:
        if obj.id is None:
            raise UsageError(f"{type(obj).__name__} has no id; save it first")
        return f"/{obj.schema_name()}/{quote(obj.id, safe='')}"

    @staticmethod
    def _query_path(schema: str, query: Query | None) -> str:
        path = f"/{schema}"
        if query is not None:
            qs = query.query_string()
            if qs:
                path = f"{path}?{qs}"
        return path

    def _collection_field(
        self, obj: Model, field: str, objs: Iterable[Model]
    ) -> tuple[FieldInfo, list[Model]]:
        meta = self.registry.metadata_for(type(obj))
        info = meta.resolve(field)
        if info is None:
            raise UsageError(f"{meta.schema_name} has no field {field!r}")
        if info.kind is not FieldKind.MODEL_ARRAY:
            raise UsageError(f"{meta.schema_name}.{info.name} is not a model collection")
        objs = list(objs)
        for element in objs:
            if not isinstance(element, info.element_type):
                raise UsageError(
                    f"{meta.schema_name}.{info.name} holds {info.element_type.__name__}, "
                    f"got {type(element).__name__}"
                )
        return info, objs

    @staticmethod
    def _require_ids(objs: list[Model]) -> list[str]:
        missing = [o for o in objs if o.id is None]
        if missing:
            raise UsageError(f"{len(missing)} objects have no id; save them first")
        return [o.id for o in objs]

    # -- single objects ---------------------------------------------------

    def save(self, obj: M, options: RequestOptions | None = None) -> M:
        """
        Create or update ``obj`` and every relation within the expand depth.

        The server assigned timestamps are copied back into ``obj``.
        """
        options = self._options(options)
        result = self.serializer.to_wire(
            obj, options.expand_depth, options.selection_object()
        )
        headers = {**result.headers(self.config), **options.request_headers(self.config)}
        _, data = self._request("POST", f"/{obj.schema_name()}", result.value, headers)
        if data is not None:
            self.reconciler.fill_from(obj, data, Selection(self.config.save_response_fields))
        return obj

    def fetch(self, obj: M, options: RequestOptions | None = None) -> M:
        """Refresh ``obj`` from the server, reusing nested instances."""
        options = self._options(options)
        _, data = self._request(
            "GET", self._object_path(obj), headers=options.request_headers(self.config)
        )
        if data is not None:
            self.reconciler.fill_from(obj, data, options.selection_object())
        return obj

    def destroy(self, obj: Model) -> None:
        self._request("DELETE", self._object_path(obj))

    def exists(self, obj: Model) -> bool:
        return self._send("HEAD", self._object_path(obj)).status < 400

    # -- bulk -------------------------------------------------------------

    def save_multiple(self, objs: Iterable[Model]) -> Any:
        """Create several objects of one type in a single request.

        Returns
        -------
        Any
            The decoded server response
        """
        objs = list(objs)
        if not objs:
            raise UsageError("Nothing to save")
        model_type = type(objs[0])
        if any(type(o) is not model_type for o in objs):
            raise UsageError("All objects of a bulk save must have the same type")
        result = self.serializer.to_wire_many(objs)
        _, data = self._request(
            "POST", f"/{model_type.schema_name()}", result.value, result.headers(self.config)
        )
        return data

    def query(
        self,
        model_type: type[M],
        query: Query | None = None,
        options: RequestOptions | None = None,
    ) -> list[M]:
        """Return the objects of ``model_type`` matching ``query``."""
        options = self._options(options)
        headers = options.request_headers(self.config)
        if query is not None:
            headers.update(query.headers())
        selection = Selection(
            query.selection if query is not None and query.selection is not None
            else options.selection
        )
        _, data = self._request(
            "GET", self._query_path(model_type.schema_name(), query), headers=headers
        )
        results = []
        for element in data or []:
            if not isinstance(element, dict):
                logger.warning(
                    f"Skipping {model_type.schema_name()} result that is not an object: "
                    f"{element!r}"
                )
                continue
            obj = new_instance(model_type)
            results.append(self.reconciler.fill_from(obj, element, selection))
        return results

    def count(self, model_type: type[Model], query: Query | None = None) -> int:
        """Number of objects matching ``query``, read from the range header."""
        headers = query.headers() if query is not None else {}
        headers["Range"] = "objects=0-0"
        resp_headers, data = self._request(
            "GET", self._query_path(model_type.schema_name(), query), headers=headers
        )
        total = _parse_total(_header(resp_headers, "Content-Range"))
        if total is not None:
            return total
        return len(data) if isinstance(data, list) else 0

    def delete_matching(self, model_type: type[Model], query: Query) -> None:
        self._request("DELETE", self._query_path(model_type.schema_name(), query))

    # -- relations --------------------------------------------------------

    def append(self, obj: M, field: str, objs: Iterable[Model]) -> M:
        """Add existing objects to a relation collection."""
        info, objs = self._collection_field(obj, field, objs)
        ids = self._require_ids(objs)
        self._request("PUT", f"{self._object_path(obj)}/{info.wire_name}", ids)
        self._extend_local(obj, info, objs)
        return obj

    def append_and_save(self, obj: M, field: str, objs: Iterable[Model]) -> M:
        """Create objects and add them to a relation collection."""
        info, objs = self._collection_field(obj, field, objs)
        path = f"{self._object_path(obj)}/{info.wire_name}"
        result = self.serializer.to_wire_many(objs)
        self._request("POST", path, result.value, result.headers(self.config))
        self._extend_local(obj, info, objs)
        return obj

    def remove(
        self, obj: M, field: str, objs: Iterable[Model], cascade: bool = False
    ) -> M:
        """Remove objects from a relation, deleting them too if ``cascade``."""
        info, objs = self._collection_field(obj, field, objs)
        ids = self._require_ids(objs)
        path = (
            f"{self._object_path(obj)}/{info.wire_name}/"
            + ",".join(quote(i, safe="") for i in ids)
        )
        headers = {self.config.cascade_delete_header: "true"} if cascade else {}
        self._request("DELETE", path, headers=headers)
        current = getattr(obj, info.name, None)
        if isinstance(current, MutableSequence):
            current[:] = [e for e in current if e.id not in ids]
        return obj

    @staticmethod
    def _extend_local(obj: Model, info: FieldInfo, objs: list[Model]) -> None:
        current = getattr(obj, info.name, None)
        if current is None:
            setattr(obj, info.name, (info.container_type or list)(objs))
        elif isinstance(current, MutableSequence):
            current.extend(o for o in objs if all(o is not e for e in current))
