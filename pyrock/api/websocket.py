"""WebSocket control endpoint."""

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from pyrock.core.dependencies import CommandDispatcherDep
from pyrock.core.logging import get_logger
from pyrock.core.metrics import websocket_connections_active

logger = get_logger(__name__)

router = APIRouter()


@router.websocket("/")
async def browser_control(websocket: WebSocket, dispatcher: CommandDispatcherDep) -> None:
    """WebSocket endpoint for remote browser control.

    Connection flow:
    1. Server accepts and sends one status message
    2. Client sends JSON commands (navigate, click, type, key, screenshot, status, init)
    3. Server answers every command with exactly one reply, in receipt order

    Errors never close the connection; they are answered with an error message.

    Args:
        websocket: WebSocket connection
        dispatcher: Command dispatcher from dependency
    """
    await websocket.accept()
    websocket_connections_active.inc()
    logger.info("websocket_client_connected")

    try:
        await websocket.send_json(dispatcher.connection_status())

        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes") or b""

            reply = await dispatcher.handle_message(raw)
            await websocket.send_json(reply)

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error("websocket_connection_error", error=str(e))
    finally:
        websocket_connections_active.dec()
        logger.info("websocket_client_disconnected")
