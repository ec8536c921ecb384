"""
Paste API endpoint.

Everything is served from "/", as browsers and existing clients expect:
- GET  /?<pasteid>                    read (data API only)
- GET  /?pasteid=<id>&deletetoken=<t> delete
- GET  /?jsonld=<type>                JSON-LD context
- GET  /?link=<url>                   shorten a paste link
- POST /                              create paste or comment (JSON body)
- DELETE /                            delete (JSON body)
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl

import structlog
from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from ..config import get_settings
from ..core.dispatcher import DispatchResult, RequestContext, RequestDispatcher
from ..core.limiter import RateLimiter
from .view import render_view

logger = structlog.get_logger(__name__)

router = APIRouter()

BARE_ID_PATTERN = re.compile(r"\A[a-f0-9]{16}\Z")
JSON_TYPES = ("application/json", "application/ld+json")

JSON_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE",
    "Access-Control-Allow-Headers": "X-Requested-With, Content-Type",
}

JSONLD_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET",
}


@dataclass
class ClassifiedRequest:
    """Operation tag and parameters extracted from an HTTP request."""
    operation: Optional[str]
    params: Dict[str, Any] = field(default_factory=dict)
    json_api: bool = False


def _accepts_json(accept: str) -> bool:
    """True when the Accept header lists a JSON type before text/html."""
    accept = accept.lower()
    html_at = accept.find("text/html")
    for media_type in JSON_TYPES:
        json_at = accept.find(media_type)
        if json_at >= 0 and (html_at < 0 or json_at < html_at):
            return True
    return False


def _query_params(request: Request) -> Dict[str, Any]:
    params: Dict[str, Any] = dict(request.query_params)
    if "pasteid" not in params:
        # Short form: "/?<pasteid>"
        first = next(iter(request.query_params.keys()), None)
        if first and BARE_ID_PATTERN.match(first) and not request.query_params[first]:
            params["pasteid"] = first
    return params


async def _body_params(request: Request) -> Optional[Dict[str, Any]]:
    """Parsed request body, or None when it is not JSON."""
    raw = await request.body()
    if not raw:
        return None
    try:
        body = json.loads(raw)
    except ValueError:
        return None
    return body if isinstance(body, dict) else {}


async def classify_request(request: Request) -> ClassifiedRequest:
    """Derive the operation, its parameters and the transport of a request."""
    json_api = (
        request.headers.get("x-requested-with") == "JSONHttpRequest"
        or _accepts_json(request.headers.get("accept", ""))
    )

    if request.method in ("POST", "PUT", "DELETE"):
        body = await _body_params(request)
        if body is None:
            raw = await request.body()
            params: Dict[str, Any] = dict(parse_qsl(raw.decode("utf-8", "replace")))
        else:
            params = body
            json_api = True

        if request.method == "DELETE" or (params.get("pasteid") and params.get("deletetoken")):
            return ClassifiedRequest("delete", params, json_api)
        return ClassifiedRequest("create", params, json_api)

    params = _query_params(request)
    if params.get("pasteid"):
        operation = "delete" if params.get("deletetoken") else "read"
        return ClassifiedRequest(operation, params, json_api)
    if "jsonld" in params:
        return ClassifiedRequest("metadata", params, json_api)
    if "link" in params:
        return ClassifiedRequest("proxy", params, json_api)
    return ClassifiedRequest(None, params, json_api)


def url_base(request: Request) -> str:
    settings = get_settings()
    return settings.main.basepath or str(request.base_url)


def _emit(result: DispatchResult, classified: ClassifiedRequest) -> Response:
    if result.jsonld is not None:
        return JSONResponse(
            content=result.jsonld,
            media_type="application/ld+json",
            headers=JSONLD_HEADERS,
        )

    headers: Dict[str, str] = {}
    if result.retry_after:
        headers["Retry-After"] = str(result.retry_after)

    if classified.json_api and result.json is not None:
        return JSONResponse(content=result.json, headers={**JSON_HEADERS, **headers})

    response = render_view(get_settings(), result)
    response.headers.update(headers)
    return response


@router.api_route(
    "/",
    methods=["GET", "POST", "PUT", "DELETE"],
    summary="Paste operations",
    description="""
    Single entry point for pastes and comments.

    **Data API:** JSON requests (`X-Requested-With: JSONHttpRequest`, a JSON
    body, or `Accept: application/json`) get `{"status": 0, ...}` on success
    and `{"status": 1, "message": ...}` on failure.

    **Document view:** other requests get an HTML page with the status or
    error message.
    """,
)
async def paste_endpoint(request: Request) -> Response:
    classified = await classify_request(request)

    dispatcher: RequestDispatcher = request.app.state.dispatcher
    rate_limiter: RateLimiter = request.app.state.rate_limiter
    context = RequestContext(
        url_base=url_base(request),
        client_address=rate_limiter.client_address(
            request.headers,
            request.client.host if request.client else None,
        ),
        json_api=classified.json_api,
    )

    logger.debug(
        "Dispatching request",
        operation=classified.operation,
        json_api=classified.json_api,
        method=request.method,
    )

    result = await dispatcher.dispatch(classified.operation, classified.params, context)
    return _emit(result, classified)
