"""Request dependencies."""

from fastapi import Request

from website.content.engine import SyncEngine
from website.core.config import Settings


def get_engine(request: Request) -> SyncEngine:
    return request.app.state.engine


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
