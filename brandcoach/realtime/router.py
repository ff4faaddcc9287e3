"""WebSocket API for table change events.

Clients re-run their fetch when a change arrives. With Redis configured the
stream follows the ``table_changes:{table}`` channel so writes from every
worker are seen; otherwise it follows the in-process ``TableChangeBus``.

Admins receive the changed record; other users only receive the table,
operation and timestamp.
"""

import asyncio
import contextlib
import json
from typing import Any

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from jose import JWTError

from brandcoach.auth.dependencies import user_from_token
from brandcoach.auth.schemas import UserResponse
from brandcoach.core.context import RequestContext
from brandcoach.core.events import TableChange, TableChangeBus
from brandcoach.core.logging import get_logger
from brandcoach.core.redis import get_redis, table_change_channel
from brandcoach.progress.service import ENROLLMENTS_TABLE, LESSON_PROGRESS_TABLE
from brandcoach.quizzes.service import QUIZ_ATTEMPTS_TABLE


logger = get_logger(__name__)

router = APIRouter(tags=["realtime-ws"])

STREAMABLE_TABLES = frozenset(
    {ENROLLMENTS_TABLE, LESSON_PROGRESS_TABLE, QUIZ_ATTEMPTS_TABLE}
)
PING_INTERVAL = 30


def authenticate_websocket(token: str) -> UserResponse | None:
    """Authenticate WebSocket connection using JWT token."""
    try:
        return user_from_token(token)
    except JWTError as e:
        logger.warning("websocket_auth_failed", error=str(e))
    return None


def visible_message(message: dict[str, Any], user: UserResponse) -> dict[str, Any]:
    """Strip the record for non-admin users."""
    if user.is_admin:
        return message
    return {key: value for key, value in message.items() if key != "record"}


async def redis_forwarder(table: str, user: UserResponse, websocket: WebSocket) -> None:
    """Subscribe to the table's Redis channel and forward messages."""
    redis_client = get_redis()
    if not redis_client:
        return

    pubsub = redis_client.pubsub()
    channel = table_change_channel(table)

    try:
        await pubsub.subscribe(channel)
        logger.info("subscribed_to_channel", user_id=user.id, channel=channel)

        while True:
            message = await pubsub.get_message(
                ignore_subscribe_messages=True, timeout=1.0
            )
            if message and message["type"] == "message":
                try:
                    data = json.loads(message["data"])
                except json.JSONDecodeError:
                    logger.warning("table_change_undecodable", channel=channel)
                else:
                    await websocket.send_json(visible_message(data, user))

            # Small delay to prevent busy loop
            await asyncio.sleep(0.1)

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.warning("redis_forwarder_error", user_id=user.id, error=str(e))
    finally:
        await pubsub.unsubscribe(channel)
        await pubsub.aclose()
        logger.info("unsubscribed_from_channel", user_id=user.id, channel=channel)


async def local_forwarder(
    table: str, user: UserResponse, websocket: WebSocket, bus: TableChangeBus
) -> None:
    """Forward changes published on this worker's bus."""
    queue: asyncio.Queue[TableChange] = asyncio.Queue()
    unsubscribe = bus.on_table_changed(table, queue.put_nowait)

    try:
        while True:
            change = await queue.get()
            await websocket.send_json(visible_message(change.to_message(), user))
    except WebSocketDisconnect:
        pass
    finally:
        unsubscribe()


@router.websocket("/ws/tables/{table}")
async def table_changes_websocket(
    websocket: WebSocket,
    table: str,
    token: str = Query(..., description="JWT access token"),
) -> None:
    """WebSocket endpoint for table change events.

    Connect with: ws://host/ws/tables/lesson_progress?token=<jwt_token>

    Messages received:
    - {"type": "connected", "table": ...} - Subscription is live
    - {"type": "table_change", "table", "operation", "occurred_at", ...}
    - {"type": "ping"} - Keep-alive ping (every 30s)

    Messages you can send:
    - {"type": "ping"} - Answered with {"type": "pong"}
    """
    user = authenticate_websocket(token)
    if not user:
        await websocket.close(code=4001, reason="Authentication failed")
        return

    if table not in STREAMABLE_TABLES:
        await websocket.close(code=4004, reason="Unknown table")
        return

    await websocket.accept()
    with RequestContext(user_id=user.id):
        await stream_table_changes(websocket, table, user)


async def stream_table_changes(
    websocket: WebSocket, table: str, user: UserResponse
) -> None:
    """Run the forwarder and the ping/pong loop until the client leaves."""
    logger.info("websocket_connected", user_id=user.id, table=table)

    if get_redis():
        forwarder = redis_forwarder(table, user, websocket)
    else:
        forwarder = local_forwarder(
            table, user, websocket, websocket.app.state.table_events
        )
    forwarder_task = asyncio.create_task(forwarder)

    try:
        await websocket.send_json({"type": "connected", "table": table})

        while True:
            try:
                message = await asyncio.wait_for(
                    websocket.receive_json(), timeout=PING_INTERVAL
                )
                if message.get("type") == "ping":
                    await websocket.send_json({"type": "pong"})
            except TimeoutError:
                await websocket.send_json({"type": "ping"})

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.warning("websocket_error", user_id=user.id, error=str(e))
    finally:
        if not forwarder_task.done():
            forwarder_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await forwarder_task

        logger.info("websocket_disconnected", user_id=user.id, table=table)
