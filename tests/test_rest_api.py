"""Tests for chatrelay.server -- REST API endpoints.

These tests use httpx.AsyncClient with ASGITransport to call the FastAPI app
directly (no real server needed). The upstream generator is controlled via
the `app` fixture in conftest.
"""

from unittest.mock import patch

import pytest

from tests.conftest import ScriptedGenerator


# ---------------------------------------------------------------------------
# Health check endpoint
# ---------------------------------------------------------------------------

class TestHealthCheckEndpoint:

    @pytest.mark.asyncio
    async def test_health_check_without_upstream(self, client):
        resp = await client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "upstream": None}

    @pytest.mark.asyncio
    async def test_health_check_reports_upstream_name(self, app, client):
        app.state.generator = ScriptedGenerator(["hi"])
        resp = await client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "upstream": "scripted"}


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------

class TestStartup:

    @pytest.mark.asyncio
    async def test_startup_builds_generator_once(self, app):
        from chatrelay.server import startup_event

        generator = ScriptedGenerator(["x"])
        with patch("chatrelay.server.build_generator", return_value=generator) as mock_build:
            await startup_event()

        mock_build.assert_awaited_once_with(app.state.config)
        assert app.state.generator is generator
