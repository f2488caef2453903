"""Generic resource request handler.

One handler serves every registered resource. For each request it:

1. resolves the acting identity from the session provider,
2. checks the caller's rate limit bucket,
3. maps the HTTP method to an operation kind and asks the access policy
   for a decision, exactly once and before any data access,
4. dispatches to the data store and returns the resulting record(s).

Every failure is translated into a structured JSON error by
``translate_errors``.
"""

import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from fastapi import status

from leavedesk.app.api.auth import SessionProvider
from leavedesk.app.authz import AccessDecision, AccessPolicy, Operation, operation_for_method
from leavedesk.app.db.context import RequestContext
from leavedesk.app.db.queries import QueryOptions
from leavedesk.app.db.repositories import RateLimiter, RecordStore
from leavedesk.app.errors import AuthorizationError, MethodNotAllowedError, RateLimitedError
from leavedesk.app.handlers.errors import ResourceResponse, translate_errors
from leavedesk.app.models import validate_payload
from leavedesk.app.ratelimit import make_rate_limit_key
from leavedesk.app.resources import ResourceDescriptor, ResourceRegistry
from leavedesk.app.utils.logging import StructuredRequestLogger
from leavedesk.app.utils.metrics import PrometheusRequestMetrics


@dataclass(frozen=True)
class ResourceRequest:
    """One inbound request, stripped of the HTTP framework."""

    method: str
    resource: str
    record_id: str | None = None
    body: Any = None
    query: Mapping[str, str] = field(default_factory=dict)
    authorization: str | None = None


@dataclass
class _Trace:
    ctx: RequestContext | None = None
    operation: Operation | None = None


class ResourceRequestHandler:
    """Authorize-then-dispatch CRUD handler parametrized by resource descriptors."""

    def __init__(
        self,
        *,
        registry: ResourceRegistry,
        sessions: SessionProvider,
        policy: AccessPolicy,
        store: RecordStore,
        limiter: RateLimiter | None = None,
        default_page_size: int = 50,
        max_page_size: int = 200,
        metrics: PrometheusRequestMetrics | None = None,
        request_logger: StructuredRequestLogger | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._registry = registry
        self._sessions = sessions
        self._policy = policy
        self._store = store
        self._limiter = limiter
        self._default_page_size = default_page_size
        self._max_page_size = max_page_size
        self._metrics = metrics or PrometheusRequestMetrics()
        self._log = request_logger or StructuredRequestLogger()
        self._clock = clock

    async def handle(self, request: ResourceRequest) -> ResourceResponse:
        """Handle one request; never raises."""
        started = time.perf_counter()
        trace = _Trace()

        response = await translate_errors(lambda: self._handle(request, trace))

        latency_ms = (time.perf_counter() - started) * 1000
        operation = trace.operation.value if trace.operation else "none"
        resource = request.resource if request.resource in self._registry.names() else "unknown"
        self._metrics.record_request(resource, operation, response.status_code, latency_ms)
        self._log.log_request(
            request.method,
            request.resource,
            request.record_id,
            response.status_code,
            latency_ms,
            ctx=trace.ctx,
            error_code=response.error_code,
        )
        return response

    async def _handle(self, request: ResourceRequest, trace: _Trace) -> ResourceResponse:
        ctx = await self._sessions.resolve_session(request.authorization)
        trace.ctx = ctx

        descriptor = self._registry.get(request.resource)
        await self._check_rate_limit(ctx)

        operation = operation_for_method(request.method)
        if operation is None:
            raise MethodNotAllowedError(request.method.upper())
        trace.operation = operation

        decision = await self._authorize(ctx, descriptor, request, operation)

        if request.record_id is None:
            return await self._dispatch_collection(ctx, descriptor, request, decision)
        return await self._dispatch_item(ctx, descriptor, request)

    async def _check_rate_limit(self, ctx: RequestContext) -> None:
        if self._limiter is None:
            return

        retry_after = await self._limiter.check_quota(make_rate_limit_key(ctx), self._clock())
        if retry_after is not None:
            raise RateLimitedError(retry_after.seconds)

    async def _authorize(
        self,
        ctx: RequestContext,
        descriptor: ResourceDescriptor,
        request: ResourceRequest,
        operation: Operation,
    ) -> AccessDecision:
        decision = await self._policy.check_access(
            ctx, descriptor, request.record_id, operation, request.body
        )
        self._log.log_decision(
            ctx, descriptor.name, request.record_id, operation.value, decision.allowed, decision.reason
        )

        if not decision.allowed:
            self._metrics.inc_denied(descriptor.name, operation.value)
            raise AuthorizationError(f"Access denied: {decision.reason}")

        return decision

    async def _dispatch_item(
        self, ctx: RequestContext, descriptor: ResourceDescriptor, request: ResourceRequest
    ) -> ResourceResponse:
        method = request.method.upper()
        record_id = request.record_id or ""

        if method == "GET":
            options = QueryOptions.from_query(descriptor, request.query)
            data = await self._store.find(descriptor, ctx, record_id, options)
            # A missing record is a null success, not a 404
            return ResourceResponse(status_code=status.HTTP_200_OK, body=data)

        if method == "PUT":
            patch = validate_payload(descriptor.schema, request.body)
            await self._check_merged(ctx, descriptor, record_id, patch)
            data = await self._store.update(descriptor, ctx, record_id, patch)
            return ResourceResponse(status_code=status.HTTP_200_OK, body=data)

        if method == "DELETE":
            data = await self._store.delete(descriptor, ctx, record_id)
            return ResourceResponse(status_code=status.HTTP_200_OK, body=data)

        raise MethodNotAllowedError(method)

    async def _check_merged(
        self,
        ctx: RequestContext,
        descriptor: ResourceDescriptor,
        record_id: str,
        patch: dict[str, Any],
    ) -> None:
        """Re-run the schema over the stored record with the patch applied.

        Cross-field rules such as a leave's date order only see the fields in
        the body, so a PUT naming one side of the pair is checked here.
        """
        existing = await self._store.find(descriptor, ctx, record_id)
        if existing is None:
            return

        merged = {name: existing.get(name) for name in descriptor.schema.model_fields}
        merged.update(patch)
        validate_payload(descriptor.schema, merged, exclude_unset=False)

    async def _dispatch_collection(
        self,
        ctx: RequestContext,
        descriptor: ResourceDescriptor,
        request: ResourceRequest,
        decision: AccessDecision,
    ) -> ResourceResponse:
        method = request.method.upper()

        if method == "GET":
            options = QueryOptions.from_query(
                descriptor,
                request.query,
                for_list=True,
                default_limit=self._default_page_size,
                max_limit=self._max_page_size,
            )
            if decision.owner_only:
                options = replace(
                    options, filters={**options.filters, descriptor.owner_field: ctx.user_id}
                )
            data = await self._store.find_many(descriptor, ctx, options)
            return ResourceResponse(status_code=status.HTTP_200_OK, body=data)

        if method == "POST":
            values = validate_payload(descriptor.schema, request.body, exclude_unset=False)
            if decision.owner_only and values.get(descriptor.owner_field) is None:
                values[descriptor.owner_field] = ctx.user_id
            data = await self._store.create(descriptor, ctx, values)
            return ResourceResponse(status_code=status.HTTP_201_CREATED, body=data)

        raise MethodNotAllowedError(method)
