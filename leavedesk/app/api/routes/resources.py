"""Generic resource endpoints - /api/{resource} and /api/{resource}/{record_id}.

Every method is routed to the same handler so that unsupported verbs get a
405 JSON body from the handler rather than from the router.
"""

import json
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from leavedesk.app.handlers.errors import ResourceResponse
from leavedesk.app.handlers.resource import ResourceRequest, ResourceRequestHandler

router = APIRouter(prefix="/api", tags=["resources"])

ROUTED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE"]


def get_resource_handler(request: Request) -> ResourceRequestHandler:
    """FastAPI dependency returning the handler built at startup."""
    return request.app.state.resource_handler


async def _read_body(request: Request) -> Any:
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        # Fails schema validation later as a non-object body
        return raw.decode("utf-8", errors="replace")


async def _handle(
    handler: ResourceRequestHandler, request: Request, resource: str, record_id: str | None
) -> JSONResponse:
    result: ResourceResponse = await handler.handle(
        ResourceRequest(
            method=request.method,
            resource=resource,
            record_id=record_id,
            body=await _read_body(request),
            query=dict(request.query_params),
            authorization=request.headers.get("authorization"),
        )
    )
    return JSONResponse(
        status_code=result.status_code,
        content=jsonable_encoder(result.body),
        headers=result.headers,
    )


@router.api_route("/{resource}", methods=ROUTED_METHODS)
async def resource_collection(
    resource: str,
    request: Request,
    handler: Annotated[ResourceRequestHandler, Depends(get_resource_handler)],
) -> JSONResponse:
    """List (GET) or create (POST) records of a resource."""
    return await _handle(handler, request, resource, None)


@router.api_route("/{resource}/{record_id}", methods=ROUTED_METHODS)
async def resource_item(
    resource: str,
    record_id: str,
    request: Request,
    handler: Annotated[ResourceRequestHandler, Depends(get_resource_handler)],
) -> JSONResponse:
    """Read (GET), replace fields (PUT) or delete (DELETE) one record."""
    return await _handle(handler, request, resource, record_id)
