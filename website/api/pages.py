"""Blog list and blog page routes."""

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import HTMLResponse, JSONResponse
from starlette.status import HTTP_404_NOT_FOUND

from website.api.conditional import not_modified_response, validation_headers
from website.api.deps import get_engine, get_settings
from website.api.schemas import BlogList
from website.content.conditional import item_validator
from website.content.engine import SyncEngine
from website.content.models import ContentKind
from website.core.config import Settings

router = APIRouter(tags=["pages"])


def _aggregate_page(
    request: Request, engine: SyncEngine, settings: Settings, build
) -> Response:
    # Read the token before the data
    token = engine.aggregate_token()
    cached = not_modified_response(request, token, settings.CACHE_CONTROL)
    if cached is not None:
        return cached
    page: BlogList = build()
    return JSONResponse(
        content=page.model_dump(),
        headers=validation_headers(token, settings.CACHE_CONTROL),
    )


@router.get("/", response_model=BlogList)
def home(
    request: Request,
    engine: SyncEngine = Depends(get_engine),
    settings: Settings = Depends(get_settings),
) -> Response:
    """The most recently created blogs."""
    return _aggregate_page(
        request, engine, settings, lambda: BlogList.from_records(engine.recent_top())
    )


@router.get("/blogs", response_model=BlogList)
def blogs(
    request: Request,
    engine: SyncEngine = Depends(get_engine),
    settings: Settings = Depends(get_settings),
) -> Response:
    """Every blog, newest first."""
    return _aggregate_page(
        request,
        engine,
        settings,
        lambda: BlogList.from_records(engine.snapshot_sorted(ContentKind.BLOG)),
    )


@router.get("/topic/{name}", response_model=BlogList)
def topic(
    name: str,
    request: Request,
    engine: SyncEngine = Depends(get_engine),
    settings: Settings = Depends(get_settings),
) -> Response:
    """Blogs tagged with a topic."""
    records = engine.cache.by_topic(name)
    if not records:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail=f"Topic '{name}' not found")
    return _aggregate_page(
        request, engine, settings, lambda: BlogList.from_records(records, topic=name)
    )


@router.get("/blog/{blog_id}", response_class=HTMLResponse)
def blog(
    blog_id: int,
    request: Request,
    engine: SyncEngine = Depends(get_engine),
    settings: Settings = Depends(get_settings),
) -> Response:
    """One rendered blog."""
    record = engine.cache.find_by_id(ContentKind.BLOG, blog_id)
    if record is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail=f"Blog {blog_id} not found")

    token = item_validator(record)
    cached = not_modified_response(request, token, settings.CACHE_CONTROL)
    if cached is not None:
        return cached

    record = engine.read_blog(blog_id)
    if record is None or record.cached_payload is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail=f"Blog {blog_id} not found")
    return HTMLResponse(
        content=record.cached_payload,
        headers=validation_headers(item_validator(record), settings.CACHE_CONTROL),
    )
