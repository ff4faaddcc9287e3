"""Tests for the table change WebSocket."""

import asyncio
import contextlib
from collections.abc import Callable
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from brandcoach.auth.permissions import UserRole
from brandcoach.auth.schemas import UserResponse
from brandcoach.core.events import ChangeOperation, TableChangeBus
from brandcoach.realtime.router import local_forwarder, visible_message


class TestTableChangesWebSocket:
    """Tests for /ws/tables/{table}."""

    def test_invalid_token_closes_4001(self, client: TestClient) -> None:
        with (
            pytest.raises(WebSocketDisconnect) as exc_info,
            client.websocket_connect("/ws/tables/lesson_progress?token=bad"),
        ):
            pass

        assert exc_info.value.code == 4001

    def test_unknown_table_closes_4004(
        self, client: TestClient, make_token: Callable[..., str]
    ) -> None:
        with (
            pytest.raises(WebSocketDisconnect) as exc_info,
            client.websocket_connect(f"/ws/tables/users?token={make_token()}"),
        ):
            pass

        assert exc_info.value.code == 4004

    def test_connected_and_pong(
        self, client: TestClient, make_token: Callable[..., str]
    ) -> None:
        with client.websocket_connect(
            f"/ws/tables/lesson_progress?token={make_token()}"
        ) as websocket:
            assert websocket.receive_json() == {
                "type": "connected",
                "table": "lesson_progress",
            }

            websocket.send_json({"type": "ping"})
            assert websocket.receive_json() == {"type": "pong"}


class TestLocalForwarder:
    """Tests for forwarding bus changes to a socket."""

    @pytest.mark.asyncio
    async def test_forwards_and_unsubscribes(self) -> None:
        bus = TableChangeBus()
        websocket = Mock()
        websocket.send_json = AsyncMock()
        user = UserResponse(id="1", email="coach@example.com", role=UserRole.ADMIN)

        task = asyncio.create_task(
            local_forwarder("lesson_progress", user, websocket, bus)
        )
        await asyncio.sleep(0.01)

        await bus.publish("lesson_progress", ChangeOperation.INSERT, {"lesson_id": 2})
        await asyncio.sleep(0.01)

        message = websocket.send_json.await_args.args[0]
        assert message["record"] == {"lesson_id": 2}

        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

        await bus.publish("lesson_progress", ChangeOperation.INSERT, {"lesson_id": 3})
        assert websocket.send_json.await_count == 1


class TestVisibleMessage:
    """Tests for per-role message filtering."""

    def test_students_do_not_receive_records(self) -> None:
        message = {"type": "table_change", "table": "t", "record": {"email": "x"}}
        student = UserResponse(id="1", email="ana@example.com", role=UserRole.STUDENT)
        admin = UserResponse(id="2", email="coach@example.com", role=UserRole.ADMIN)

        assert "record" not in visible_message(message, student)
        assert visible_message(message, admin) == message
