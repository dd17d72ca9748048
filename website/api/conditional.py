"""Conditional request helpers shared by the content routes."""

from typing import Optional

from fastapi import Request, Response
from starlette.status import HTTP_304_NOT_MODIFIED

from website.content.conditional import CacheControlToken, is_not_modified


def validation_headers(token: CacheControlToken, cache_control: str) -> dict[str, str]:
    """Headers that let a client revalidate its copy later."""
    return {
        "ETag": f'"{token.validator}"',
        "Last-Modified": token.last_modified,
        "Cache-Control": cache_control,
    }


def not_modified_response(
    request: Request, token: CacheControlToken, cache_control: str
) -> Optional[Response]:
    """Return a bodiless 304 if the client's copy is current, else None."""
    if not is_not_modified(
        token,
        if_none_match=request.headers.get("if-none-match"),
        if_modified_since=request.headers.get("if-modified-since"),
    ):
        return None
    return Response(
        status_code=HTTP_304_NOT_MODIFIED,
        headers=validation_headers(token, cache_control),
    )
