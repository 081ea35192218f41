"""
Tests for structured logging helpers.
"""

from __future__ import annotations

import pytest
import structlog

from proclayer.core.logging import (
    LogContext,
    bind_context,
    clear_context,
    configure_logging,
    unbind_context,
)


@pytest.fixture(autouse=True)
def _clean_context():
    clear_context()
    yield
    clear_context()


class TestContextBinding:
    def test_bind_and_unbind(self):
        bind_context(request_id="r1", namespace="users")
        assert structlog.contextvars.get_contextvars() == {"request_id": "r1", "namespace": "users"}
        unbind_context("namespace")
        assert structlog.contextvars.get_contextvars() == {"request_id": "r1"}

    def test_log_context_scoped(self):
        with LogContext(procedure="getUser"):
            assert structlog.contextvars.get_contextvars()["procedure"] == "getUser"
        assert "procedure" not in structlog.contextvars.get_contextvars()

    @pytest.mark.asyncio
    async def test_log_context_async(self):
        async with LogContext(procedure="listUsers"):
            assert structlog.contextvars.get_contextvars()["procedure"] == "listUsers"
        assert "procedure" not in structlog.contextvars.get_contextvars()


class TestConfigureLogging:
    def test_configures_structlog(self):
        try:
            configure_logging(level="DEBUG", json_format=True, service="tests")
            assert structlog.is_configured()
        finally:
            structlog.reset_defaults()
