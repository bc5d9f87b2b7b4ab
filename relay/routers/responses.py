from typing import Optional

from fastapi.responses import JSONResponse, Response

from relay.services.http_client import UpstreamResponse


def upstream_response(upstream: UpstreamResponse) -> Response:
    """Pass an upstream status code and body through to the caller unchanged."""
    if upstream.body is None:
        return Response(status_code=upstream.status_code)
    if isinstance(upstream.body, str):
        return Response(content=upstream.body, status_code=upstream.status_code, media_type="text/plain")
    return JSONResponse(content=upstream.body, status_code=upstream.status_code)


def error_response(status_code: int, message: str, provider: Optional[str] = None,
                   details: Optional[str] = None) -> JSONResponse:
    content = {"error": message}
    if provider:
        content["provider"] = provider
    if details is not None:
        content["details"] = details
    return JSONResponse(content=content, status_code=status_code)


def validation_message(errors: list) -> str:
    """Readable one-line summary of FastAPI/pydantic validation errors."""
    if any(e.get("type") == "json_invalid" for e in errors):
        return "Request body is not valid JSON"
    parts = []
    for e in errors:
        loc = ".".join(str(p) for p in e.get("loc", ()) if p not in ("body", "query"))
        parts.append(f"{loc}: {e.get('msg')}" if loc else str(e.get("msg")))
    return "Invalid request: " + "; ".join(parts)
