"""Pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator, Callable, Generator
from pathlib import Path
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

if TYPE_CHECKING:
    from fastapi import FastAPI

from config import Settings
from pyrock.services.session_manager import SessionManager

# Smallest valid PNG header, enough for file round-trips
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def make_response(status: int = 200, status_text: str = "OK") -> MagicMock:
    """Create a mock navigation response."""
    response = MagicMock()
    response.status = status
    response.status_text = status_text
    response.ok = 200 <= status < 300
    return response


@pytest.fixture
def make_navigation_response() -> Callable[..., MagicMock]:
    """Factory for mock navigation responses."""
    return make_response


@pytest.fixture
def png_bytes() -> bytes:
    """Screenshot payload returned by mock pages."""
    return PNG_BYTES


@pytest.fixture
def static_dir(tmp_path: Path) -> Path:
    """Static asset directory with a viewer page."""
    path = tmp_path / "public"
    path.mkdir()
    (path / "index.html").write_text("<html><body>PyRock viewer</body></html>")
    return path


@pytest.fixture
def settings(static_dir: Path) -> Settings:
    """Create test settings with short recovery delays.

    Periodic intervals are long so background ticks never interfere with a test;
    tests drive ``run_once`` directly.
    """
    return Settings(
        environment="testing",
        static_dir=str(static_dir),
        navigation_timeout=5.0,
        health_check_interval=60.0,
        health_probe_timeout=0.05,
        screenshot_interval=60.0,
        init_retry_delay=0.01,
        disconnect_retry_delay=0.01,
        health_retry_delay=0.01,
        operation_retry_delay=0.0,
        max_recovery_attempts=3,
    )


@pytest.fixture
def make_page() -> Callable[..., MagicMock]:
    """Factory for mock Playwright pages."""

    def _make_page(url: str = "https://example.com/") -> MagicMock:
        page = MagicMock()
        page.url = url
        page.goto = AsyncMock(return_value=make_response())
        page.set_viewport_size = AsyncMock()
        page.evaluate = AsyncMock(return_value="Example Domain")
        page.screenshot = AsyncMock(return_value=PNG_BYTES)
        page.close = AsyncMock()
        page.is_closed = MagicMock(return_value=False)
        page.mouse.click = AsyncMock()
        page.keyboard.type = AsyncMock()
        page.keyboard.press = AsyncMock()
        page.on = MagicMock()
        return page

    return _make_page


@pytest.fixture
def make_browser(make_page: Callable[..., MagicMock]) -> Callable[..., MagicMock]:
    """Factory for mock Playwright browsers with one open page."""

    def _make_browser(page: MagicMock | None = None) -> MagicMock:
        page = page if page is not None else make_page()
        browser = MagicMock()
        browser.is_connected = MagicMock(return_value=True)
        browser.new_page = AsyncMock(return_value=page)
        browser.close = AsyncMock()
        browser.on = MagicMock()
        browser.remove_listener = MagicMock()
        context = MagicMock()
        context.pages = [page]
        browser.contexts = [context]
        return browser

    return _make_browser


@pytest.fixture
def mock_playwright(make_browser: Callable[..., MagicMock]) -> Generator[AsyncMock, None, None]:
    """Patch Playwright startup; every launch returns the same mock browser by default.

    The launched browser is ``mock_playwright.chromium.launch.return_value`` and
    its page is ``browser.new_page.return_value``.
    """
    with patch("pyrock.services.session_manager.async_playwright") as mock:
        playwright = AsyncMock()
        mock.return_value.start = AsyncMock(return_value=playwright)

        playwright.chromium.launch = AsyncMock(return_value=make_browser())
        playwright.stop = AsyncMock()

        yield playwright


@pytest.fixture(autouse=True)
def process_alive() -> Generator[MagicMock, None, None]:
    """Treat every browser process as alive unless a test says otherwise."""
    with patch("pyrock.services.session_manager.browser_process_alive", return_value=True) as mock:
        yield mock


@pytest_asyncio.fixture
async def manager(settings: Settings, mock_playwright: AsyncMock) -> AsyncGenerator[SessionManager, None]:
    """Session manager that has not been initialized yet."""
    session_manager = SessionManager(settings)
    yield session_manager
    await session_manager.shutdown()


@pytest_asyncio.fixture
async def ready_manager(manager: SessionManager) -> SessionManager:
    """Session manager with an initialized session."""
    assert await manager.initialize() is True
    return manager


async def wait_until(condition: Callable[[], Any], timeout: float = 1.0) -> None:
    """Poll until a condition holds or fail after ``timeout`` seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not condition():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.01)


@pytest.fixture
def eventually() -> Callable[..., Any]:
    """Expose ``wait_until`` to tests."""
    return wait_until


def create_test_app(settings: Settings) -> FastAPI:
    """Create a lightweight FastAPI app for testing.

    Unlike the production create_app(), this version skips the lifespan, so no
    browser is launched; tests override the session dependencies instead.
    """
    from fastapi import FastAPI
    from fastapi.staticfiles import StaticFiles

    from pyrock.api.routes import router
    from pyrock.api.websocket import router as websocket_router
    from pyrock.core.dependencies import get_app_settings

    app = FastAPI(title=settings.app_name, description="PyRock (Test)", version=settings.app_version)
    app.include_router(router)
    app.include_router(websocket_router)
    app.mount("/", StaticFiles(directory=settings.static_path), name="static")

    app.dependency_overrides[get_app_settings] = lambda: settings
    return app


@pytest.fixture
def test_app(settings: Settings) -> FastAPI:
    """FastAPI app without lifespan."""
    return create_test_app(settings)


@pytest_asyncio.fixture
async def client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the test app."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
