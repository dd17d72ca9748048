"""Image and stylesheet routes."""

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import FileResponse
from starlette.status import HTTP_404_NOT_FOUND

from website.api.conditional import not_modified_response, validation_headers
from website.api.deps import get_engine, get_settings
from website.content.conditional import item_validator
from website.content.engine import SyncEngine
from website.content.models import ContentKind
from website.core.config import Settings

router = APIRouter(prefix="/static", tags=["static"])


def serve_static(
    kind: ContentKind,
    name: str,
    request: Request,
    engine: SyncEngine,
    settings: Settings,
) -> Response:
    """Serve a tracked static file with per-item validation.

    Names are checked against the kind's naming rule before any lookup, so
    nothing outside the content directory can be addressed.
    """
    strategy = engine.strategies[kind]
    record = engine.get_by_name(kind, name) if strategy.accepts(name) else None
    if record is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail=f"File '{name}' not found")

    token = item_validator(record)
    cached = not_modified_response(request, token, settings.CACHE_CONTROL)
    if cached is not None:
        return cached

    path = strategy.path_for(name)
    if not path.is_file():
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail=f"File '{name}' not found")
    return FileResponse(path, headers=validation_headers(token, settings.CACHE_CONTROL))


@router.get("/image/{name}")
def image(
    name: str,
    request: Request,
    engine: SyncEngine = Depends(get_engine),
    settings: Settings = Depends(get_settings),
) -> Response:
    return serve_static(ContentKind.IMAGE, name, request, engine, settings)


@router.get("/css/{name}")
def stylesheet(
    name: str,
    request: Request,
    engine: SyncEngine = Depends(get_engine),
    settings: Settings = Depends(get_settings),
) -> Response:
    return serve_static(ContentKind.STYLESHEET, name, request, engine, settings)
