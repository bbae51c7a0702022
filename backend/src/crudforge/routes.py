"""CRUD route handlers and their route table.

Every endpoint is a plain async function over a ``CrudRequest``. The HTTP
layer only translates requests and mounts ``route_descriptors()``; nothing
here depends on a web framework.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from crudforge.auth.permissions import AccessFilter
from crudforge.errors import HookAbortError, InvalidQueryError, NotFoundError, UnknownModelError
from crudforge.hooks import HookContext, HookResult, HookService, Operation, Timing
from crudforge.persistence import DocumentStore, apply_projection, filter_paths, parse_projection
from crudforge.schema import WRITE, SchemaRegistry
from crudforge.search import DEFAULT_THRESHOLD, fuzzy_search
from crudforge.services import ServiceRegistry

logger = logging.getLogger(__name__)

# Store-managed paths that are valid in filters, sorts and projections but absent from schemas
_SYSTEM_PATHS = ("_id", "__v")


@dataclass
class CrudRequest:
    """Framework-independent view of an incoming request."""

    path_params: dict[str, str]
    query: dict[str, str] = field(default_factory=dict)
    body: Any = None
    access_level: int = 0


Handler = Callable[[CrudRequest], Awaitable[Any]]


@dataclass(frozen=True)
class RouteDescriptor:
    method: str
    path: str
    name: str
    handler: Handler


def _json_param(query: dict[str, str], name: str) -> dict[str, Any]:
    raw = query.get(name)
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise InvalidQueryError(f"Query parameter '{name}' is not valid JSON: {e}") from None
    if not isinstance(value, dict):
        raise InvalidQueryError(f"Query parameter '{name}' must be a JSON object")
    return value


def _int_param(query: dict[str, str], name: str) -> int | None:
    raw = query.get(name)
    if raw in (None, ""):
        return None
    try:
        value = int(raw)
    except ValueError:
        raise InvalidQueryError(f"Query parameter '{name}' must be an integer") from None
    if value < 0:
        raise InvalidQueryError(f"Query parameter '{name}' must not be negative")
    return value


def _json_body(request: CrudRequest) -> dict[str, Any]:
    if request.body is None:
        return {}
    if not isinstance(request.body, dict):
        raise InvalidQueryError("Request body must be a JSON object")
    return request.body


class SchemaKeysRequest(BaseModel):
    """Request body for schema key listing."""

    depth: int | None = Field(default=None, ge=0)


class SearchRequest(BaseModel):
    """Request body for fuzzy search."""

    pattern: str | None = None
    keys: list[str] | None = None
    threshold: float = Field(default=DEFAULT_THRESHOLD, ge=0, le=1)
    depth: int | None = Field(default=None, ge=0)
    filter: dict[str, Any] = Field(default_factory=dict)


def _parse_body(model: type[BaseModel], request: CrudRequest):
    try:
        return model.model_validate(_json_body(request))
    except ValidationError as e:
        raise InvalidQueryError(f"Invalid request body: {e}") from None


class CrudHandlers:
    """Implements the generated CRUD endpoints for every model of one store.

    Read flow: before-R hooks, query, reference hydration, read-access
    pruning, after-R hooks. Write flow: write guard, before hooks, persist,
    after hooks.
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        access: AccessFilter,
        store: DocumentStore,
        hooks: HookService,
        services: ServiceRegistry,
        hydrate_depth: int = 1,
    ):
        self.registry = registry
        self.access = access
        self.store = store
        self.hooks = hooks
        self.services = services
        self.hydrate_depth = hydrate_depth

    def route_descriptors(self) -> list[RouteDescriptor]:
        """The route table, in matching order.

        Fixed prefixes come before the catch-all ``/{model}`` routes, and
        ``/{model}/find`` before ``/{model}/{id}``.
        """
        return [
            RouteDescriptor("GET", "/schema", "get_schemas", self.get_schemas),
            RouteDescriptor("GET", "/schema/{model}", "get_schema", self.get_schema),
            RouteDescriptor("POST", "/schemakeys/{model}", "get_schema_keys", self.get_schema_keys),
            RouteDescriptor("GET", "/tableheaders/{model}", "get_table_headers", self.get_table_headers),
            RouteDescriptor("GET", "/types/{model}", "get_types", self.get_types),
            RouteDescriptor("GET", "/count/{model}", "count", self.count),
            RouteDescriptor("GET", "/getter/{service}/{fun}", "service_getter", self.service_getter),
            RouteDescriptor("POST", "/runner/{service}/{fun}", "service_runner", self.service_runner),
            RouteDescriptor("GET", "/table/{model}", "table", self.table),
            RouteDescriptor("POST", "/search/{model}", "search", self.search),
            RouteDescriptor("GET", "/{model}/find", "find", self.find),
            RouteDescriptor("GET", "/{model}/{id}", "read", self.read),
            RouteDescriptor("POST", "/{model}", "create", self.create),
            RouteDescriptor("PATCH", "/{model}", "update", self.update),
            RouteDescriptor("DELETE", "/{model}/{id}", "delete", self.delete),
        ]

    # --- helpers ---

    def _model(self, request: CrudRequest) -> str:
        model_name = request.path_params["model"]
        if not self.registry.has_model(model_name):
            raise UnknownModelError(model_name)
        return model_name

    def _projection(self, model_name: str, raw: str | None) -> tuple[list[str], list[str]]:
        try:
            included, excluded = parse_projection(raw)
        except ValueError as e:
            raise InvalidQueryError(str(e)) from None
        self.registry.validate_paths(
            model_name, [p for p in included + excluded if p not in _SYSTEM_PATHS]
        )
        return included, excluded

    def _sort(self, model_name: str, query: dict[str, str]) -> dict[str, int]:
        sort = _json_param(query, "sort")
        self.registry.validate_paths(model_name, [p for p in sort if p not in _SYSTEM_PATHS])
        return sort

    def _filter(self, model_name: str, filter: dict[str, Any]) -> dict[str, Any]:
        self.registry.validate_paths(
            model_name, [p for p in filter_paths(filter) if p not in _SYSTEM_PATHS]
        )
        return filter

    async def _run_hooks(
        self,
        request: CrudRequest,
        model_name: str,
        operation: Operation,
        timing: Timing,
        body: dict[str, Any] | None = None,
        result: Any = None,
    ) -> HookResult | None:
        context = HookContext(
            model_name=model_name,
            operation=operation,
            timing=timing,
            access_level=request.access_level,
            params={**request.query, **request.path_params},
            body=body,
            result=result,
        )
        outcome = await self.hooks.run(context)
        if outcome is not None and outcome.abort:
            raise HookAbortError(model_name, operation.value, outcome.abort)
        return outcome

    def _query(self, model_name: str, filter: dict[str, Any], **options: Any) -> list[dict[str, Any]]:
        try:
            return self.store.find(model_name, filter, **options)
        except ValueError as e:
            raise InvalidQueryError(str(e)) from None

    def _present(
        self,
        model_name: str,
        documents: list[dict[str, Any]],
        access_level: int,
        projection: tuple[list[str], list[str]] = ([], []),
    ) -> list[dict[str, Any]]:
        fields = self.registry.fields(model_name)
        self.store.hydrate_references(documents, fields, self.hydrate_depth)
        included, excluded = projection
        if included or excluded:
            documents = [apply_projection(doc, included, excluded) for doc in documents]
        return self.access.prune_documents(model_name, documents, access_level)

    async def _read_many(self, request: CrudRequest, model_name: str) -> Any:
        before = await self._run_hooks(request, model_name, Operation.READ, Timing.BEFORE)
        if before is not None and before.response is not None:
            return before.response

        query = request.query
        projection = self._projection(model_name, query.get("projection"))
        documents = self._query(
            model_name,
            self._filter(model_name, _json_param(query, "filter")),
            sort=self._sort(model_name, query),
            skip=_int_param(query, "skip") or 0,
            limit=_int_param(query, "limit"),
        )
        documents = self._present(model_name, documents, request.access_level, projection)

        after = await self._run_hooks(
            request, model_name, Operation.READ, Timing.AFTER, result=documents
        )
        if after is not None and after.response is not None:
            return after.response
        return documents

    # --- schema endpoints ---

    async def get_schemas(self, request: CrudRequest) -> Any:
        return self.registry.get_schema()

    async def get_schema(self, request: CrudRequest) -> Any:
        return self.registry.get_schema(self._model(request))

    async def get_schema_keys(self, request: CrudRequest) -> list[str]:
        model_name = self._model(request)
        body = _parse_body(SchemaKeysRequest, request)
        return self.registry.get_schema_keys(model_name, body.depth)

    async def get_table_headers(self, request: CrudRequest) -> list[dict[str, Any]]:
        return [header.to_dict() for header in self.registry.get_table_headers(self._model(request))]

    async def get_types(self, request: CrudRequest) -> dict[str, str]:
        return self.registry.get_wire_types(self._model(request))

    async def count(self, request: CrudRequest) -> dict[str, int]:
        model_name = self._model(request)
        filter = self._filter(model_name, _json_param(request.query, "filter"))
        try:
            total = self.store.count(model_name, filter)
        except ValueError as e:
            raise InvalidQueryError(str(e)) from None
        return {"count": total}

    # --- services ---

    def _service_fn(self, request: CrudRequest):
        service = request.path_params["service"]
        name = request.path_params["fun"]
        fn = self.services.get(service, name)
        if fn is None:
            raise NotFoundError(f"Service function '{service}.{name}' not found")
        return fn

    async def service_getter(self, request: CrudRequest) -> Any:
        fn = self._service_fn(request)
        return await fn({"params": dict(request.query)})

    async def service_runner(self, request: CrudRequest) -> Any:
        fn = self._service_fn(request)
        return await fn({"params": _json_body(request)})

    # --- reads ---

    async def table(self, request: CrudRequest) -> Any:
        model_name = self._model(request)
        headers = [header.to_dict() for header in self.registry.get_table_headers(model_name)]
        data = await self._read_many(request, model_name)
        return {"Headers": headers, "Data": data}

    async def find(self, request: CrudRequest) -> Any:
        return await self._read_many(request, self._model(request))

    async def search(self, request: CrudRequest) -> Any:
        """Fuzzy search over the readable documents of a model.

        Body: ``{pattern, keys?, threshold?, depth?, filter?}``. Without a
        pattern every matching document is returned; without keys the schema
        keys of the model are searched.
        """
        model_name = self._model(request)
        body = _parse_body(SearchRequest, request)
        self._filter(model_name, body.filter)
        if body.keys:
            self.registry.validate_paths(model_name, [k for k in body.keys if k not in _SYSTEM_PATHS])

        before = await self._run_hooks(request, model_name, Operation.READ, Timing.BEFORE)
        if before is not None and before.response is not None:
            return before.response

        documents = self._present(model_name, self._query(model_name, body.filter), request.access_level)

        after = await self._run_hooks(
            request, model_name, Operation.READ, Timing.AFTER, result=documents
        )
        if after is not None and after.response is not None:
            return after.response

        if not body.pattern:
            return documents

        keys = body.keys or self.registry.get_schema_keys(model_name, body.depth)
        return fuzzy_search(documents, body.pattern, keys, body.threshold)

    async def read(self, request: CrudRequest) -> Any:
        model_name = self._model(request)
        id = request.path_params["id"]

        before = await self._run_hooks(request, model_name, Operation.READ, Timing.BEFORE)
        if before is not None and before.response is not None:
            return before.response

        projection = self._projection(model_name, request.query.get("projection"))
        document = self.store.get(model_name, id)
        if document is None:
            raise NotFoundError(f"{model_name} '{id}' not found")
        document = self._present(model_name, [document], request.access_level, projection)[0]

        after = await self._run_hooks(
            request, model_name, Operation.READ, Timing.AFTER, result=document
        )
        if after is not None and after.response is not None:
            return after.response
        return document

    # --- writes ---

    async def create(self, request: CrudRequest) -> Any:
        model_name = self._model(request)
        body = self.access.guard_write(
            model_name, dict(_json_body(request)), request.access_level, "create"
        )

        before = await self._run_hooks(request, model_name, Operation.CREATE, Timing.BEFORE, body=body)
        if before is not None and before.response is not None:
            return before.response

        self.store.dehydrate_references(body, self.registry.fields(model_name))
        try:
            created = self.store.create(model_name, body)
        except ValueError as e:
            raise InvalidQueryError(str(e)) from None
        logger.debug("Created %s '%s'", model_name, created["_id"])

        after = await self._run_hooks(
            request, model_name, Operation.CREATE, Timing.AFTER, body=body, result=created
        )
        if after is not None and after.response is not None:
            return after.response
        return self.access.prune_object(model_name, created, request.access_level)

    async def update(self, request: CrudRequest) -> Any:
        model_name = self._model(request)
        body = dict(_json_body(request))
        id = body.pop("_id", None)
        if not id:
            raise InvalidQueryError("Update body must carry the document '_id'")
        body.pop("__v", None)
        body = self.access.guard_write(model_name, body, request.access_level, "update")

        before = await self._run_hooks(request, model_name, Operation.UPDATE, Timing.BEFORE, body=body)
        if before is not None and before.response is not None:
            return before.response

        self.store.dehydrate_references(body, self.registry.fields(model_name))
        # Write-protected values the caller could not send survive the merge
        keep = self.access.get_denied_paths(model_name, request.access_level, WRITE)
        updated = self.store.update(model_name, str(id), body, keep=keep)
        if updated is None:
            raise NotFoundError(f"{model_name} '{id}' not found")

        after = await self._run_hooks(
            request, model_name, Operation.UPDATE, Timing.AFTER, body=body, result=updated
        )
        if after is not None and after.response is not None:
            return after.response
        return self.access.prune_object(model_name, updated, request.access_level)

    async def delete(self, request: CrudRequest) -> Any:
        model_name = self._model(request)
        id = request.path_params["id"]
        self.access.check_delete(model_name, request.access_level)

        before = await self._run_hooks(request, model_name, Operation.DELETE, Timing.BEFORE)
        if before is not None and before.response is not None:
            return before.response

        if not self.store.delete(model_name, id):
            raise NotFoundError(f"{model_name} '{id}' not found")
        result = {"_id": id, "deleted": True}

        after = await self._run_hooks(request, model_name, Operation.DELETE, Timing.AFTER, result=result)
        if after is not None and after.response is not None:
            return after.response
        return result
