"""Table change events for realtime refetching.

Services publish a ``TableChange`` after every write. Presentation code
registers interest per table with ``on_table_changed`` and re-runs its fetch
when a change arrives. When Redis is available the change is also published
on ``table_changes:{table}`` so other workers and WebSocket clients see it.
"""

import contextlib
import inspect
import json
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

import structlog

from brandcoach.core.redis import table_change_channel


if TYPE_CHECKING:
    import redis.asyncio as redis

logger = structlog.get_logger(__name__)


class ChangeOperation(str, Enum):
    """Kind of write that produced the change."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class TableChange:
    """A single row change on a named table."""

    table: str
    operation: ChangeOperation
    record: dict[str, Any]
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_message(self) -> dict[str, Any]:
        """Serializable form used on the Pub/Sub channel."""
        return {
            "type": "table_change",
            "table": self.table,
            "operation": self.operation.value,
            "record": {k: _jsonable(v) for k, v in self.record.items()},
            "occurred_at": self.occurred_at.isoformat(),
        }


TableChangeCallback = Callable[[TableChange], Awaitable[None] | None]


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, bool | int | float | str):
        return value
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class TableChangeBus:
    """Registry of table change callbacks with optional Redis fan-out."""

    def __init__(self, redis: "redis.Redis | None" = None) -> None:
        self.redis = redis
        self._callbacks: dict[str, list[TableChangeCallback]] = defaultdict(list)

    def on_table_changed(
        self, table: str, callback: TableChangeCallback
    ) -> Callable[[], None]:
        """Register ``callback`` for changes on ``table``.

        Returns:
            A function that removes the registration.
        """
        self._callbacks[table].append(callback)

        def unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._callbacks[table].remove(callback)

        return unsubscribe

    async def publish(
        self,
        table: str,
        operation: ChangeOperation,
        record: dict[str, Any],
    ) -> TableChange:
        """Deliver a change to local callbacks and the Redis channel."""
        change = TableChange(table=table, operation=operation, record=record)

        for callback in list(self._callbacks.get(table, [])):
            try:
                result = callback(change)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                # A broken subscriber must not fail the write that triggered it
                logger.exception(
                    "table_change_callback_failed",
                    table=table,
                    operation=operation.value,
                )

        if self.redis is not None:
            try:
                await self.redis.publish(
                    table_change_channel(table), json.dumps(change.to_message())
                )
            except Exception as e:
                logger.warning(
                    "table_change_redis_publish_failed", table=table, error=str(e)
                )

        logger.debug("table_change_published", table=table, operation=operation.value)
        return change
