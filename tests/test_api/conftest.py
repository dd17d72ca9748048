"""API test fixtures."""

import pytest
from fastapi.testclient import TestClient

from website.main import create_app

HELLO = "# Hello\n\n<!-- topics -->\n- Python\n- Notes\n<!-- /topics -->\n\nFirst post.\n"


@pytest.fixture
def site(sync_engine, content_dirs, write_file):
    """An engine reconciled over one blog, one image and one stylesheet."""
    write_file(content_dirs["blogs"] / "hello.md", HELLO)
    write_file(content_dirs["images"] / "logo.png", "not really a png")
    write_file(content_dirs["css"] / "site.css", "body { margin: 0; }")
    sync_engine.reconcile_all()
    return sync_engine


@pytest.fixture
def client(settings, site):
    """Client over the app; the lifespan is not entered so no watches open."""
    return TestClient(create_app(settings, site))
