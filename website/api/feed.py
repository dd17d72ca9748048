"""RSS feed route."""

from fastapi import APIRouter, Depends, Request, Response

from website.api.conditional import not_modified_response, validation_headers
from website.api.deps import get_engine, get_settings
from website.content.engine import SyncEngine
from website.core.config import Settings

router = APIRouter(tags=["feed"])

RSS_MEDIA_TYPE = "application/rss+xml"


@router.get("/rss", response_class=Response)
def rss(
    request: Request,
    engine: SyncEngine = Depends(get_engine),
    settings: Settings = Depends(get_settings),
) -> Response:
    """The recency feed as RSS 2.0."""
    token = engine.feed_token()
    cached = not_modified_response(request, token, settings.CACHE_CONTROL)
    if cached is not None:
        return cached
    return Response(
        content=engine.feed.to_xml(),
        media_type=RSS_MEDIA_TYPE,
        headers=validation_headers(token, settings.CACHE_CONTROL),
    )
