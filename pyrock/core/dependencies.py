"""FastAPI dependency injection providers.

The browser session is process-wide: one SessionState, one SessionManager and
the services built on it are created once and shared by every connection.
"""

from typing import Annotated

from fastapi import Depends

from config import Settings, get_settings
from pyrock.services.browser_operations import BrowserOperations
from pyrock.services.command_dispatcher import CommandDispatcher
from pyrock.services.screenshot_publisher import ScreenshotPublisher
from pyrock.services.session_manager import SessionManager
from pyrock.services.session_state import SessionState


def get_app_settings() -> Settings:
    """Get application settings.

    Returns:
        Settings instance
    """
    return get_settings()


# ============================================================================
# Type Aliases for Dependency Injection (defined before use)
# ============================================================================

# Settings dependency
SettingsDep = Annotated[Settings, Depends(get_app_settings)]


# ============================================================================
# Singleton Dependencies
# ============================================================================

# Global session state instance (singleton pattern)
_session_state: SessionState | None = None

# Global session manager instance (singleton pattern)
_session_manager: SessionManager | None = None

# Global browser operations instance (singleton pattern)
_browser_operations: BrowserOperations | None = None

# Global screenshot publisher instance (singleton pattern)
_screenshot_publisher: ScreenshotPublisher | None = None

# Global command dispatcher instance (singleton pattern)
_command_dispatcher: CommandDispatcher | None = None


async def get_session_manager(settings: SettingsDep) -> SessionManager:
    """Get session manager with singleton pattern.

    The session state is created once here and handed to the manager, which
    shares it with every component it builds.

    Args:
        settings: Application settings from dependency

    Returns:
        SessionManager instance

    Usage:
        async def my_route(session_manager: SessionManagerDep):
            ready = session_manager.is_ready()
    """
    global _session_state, _session_manager

    # Guard: return existing instance if available
    if _session_manager is not None:
        return _session_manager

    _session_state = SessionState()
    _session_manager = SessionManager(settings=settings, state=_session_state)
    return _session_manager


async def get_browser_operations(settings: SettingsDep) -> BrowserOperations:
    """Get browser operations with singleton pattern.

    Args:
        settings: Application settings from dependency

    Returns:
        BrowserOperations instance
    """
    global _browser_operations

    # Guard: return existing instance if available
    if _browser_operations is not None:
        return _browser_operations

    manager = await get_session_manager(settings)
    _browser_operations = BrowserOperations(manager=manager, settings=settings)
    return _browser_operations


async def get_screenshot_publisher(settings: SettingsDep) -> ScreenshotPublisher:
    """Get screenshot publisher with singleton pattern.

    The publisher is registered as a session task, so the session manager
    starts it after every successful initialization and stops it on teardown.

    Args:
        settings: Application settings from dependency

    Returns:
        ScreenshotPublisher instance
    """
    global _screenshot_publisher

    # Guard: return existing instance if available
    if _screenshot_publisher is not None:
        return _screenshot_publisher

    manager = await get_session_manager(settings)
    operations = await get_browser_operations(settings)
    _screenshot_publisher = ScreenshotPublisher(
        manager=manager,
        operations=operations,
        interval=settings.screenshot_interval,
    )
    manager.register_session_task(_screenshot_publisher)
    return _screenshot_publisher


async def get_command_dispatcher(settings: SettingsDep) -> CommandDispatcher:
    """Get command dispatcher with singleton pattern.

    Args:
        settings: Application settings from dependency

    Returns:
        CommandDispatcher instance
    """
    global _command_dispatcher

    # Guard: return existing instance if available
    if _command_dispatcher is not None:
        return _command_dispatcher

    manager = await get_session_manager(settings)
    operations = await get_browser_operations(settings)
    _command_dispatcher = CommandDispatcher(
        manager=manager,
        operations=operations,
        screenshot_url=f"/{settings.screenshot_filename}",
    )
    return _command_dispatcher


async def initialize_browser_session() -> bool:
    """Initialize the browser session at application startup.

    Should be called in FastAPI lifespan startup. A failed first attempt is
    retried in the background by the session manager.

    Returns:
        True if the session is ready
    """
    settings = get_settings()
    manager = await get_session_manager(settings)
    await get_screenshot_publisher(settings)
    return await manager.initialize()


async def shutdown_browser_session() -> None:
    """Shutdown the browser session at application shutdown.

    Should be called in FastAPI lifespan shutdown.
    """
    global _session_state, _session_manager, _browser_operations
    global _screenshot_publisher, _command_dispatcher

    if _session_manager is not None:
        await _session_manager.shutdown()

    _session_state = None
    _session_manager = None
    _browser_operations = None
    _screenshot_publisher = None
    _command_dispatcher = None


# ============================================================================
# Service Type Aliases
# ============================================================================

SessionManagerDep = Annotated[SessionManager, Depends(get_session_manager)]
CommandDispatcherDep = Annotated[CommandDispatcher, Depends(get_command_dispatcher)]
