"""Top-level router."""

from fastapi import APIRouter, Depends

from website.api import feed, pages, static
from website.api.deps import get_engine, get_settings
from website.api.schemas import HealthResponse
from website.content.engine import SyncEngine
from website.core.config import Settings

router = APIRouter()

router.include_router(pages.router)
router.include_router(static.router)
router.include_router(feed.router)


@router.get("/health", response_model=HealthResponse, tags=["health"])
def health(
    engine: SyncEngine = Depends(get_engine),
    settings: Settings = Depends(get_settings),
) -> HealthResponse:
    """Report watcher states. Any stopped watcher marks the service degraded."""
    watchers = {kind.value: r.state.value for kind, r in engine.reconcilers.items()}
    status = "degraded" if "stopped" in watchers.values() else "healthy"
    return HealthResponse(status=status, version=settings.VERSION, watchers=watchers)
