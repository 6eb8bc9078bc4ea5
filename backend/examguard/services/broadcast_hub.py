"""
Realtime fan-out between student clients and admin observers.

One hub instance lives on ``app.state.hub`` for the lifetime of the server
process. Delivery is best effort and at most once: a failed send drops the
connection and is never retried, and nothing is replayed to late joiners.
"""
import asyncio
import json
import logging
from typing import Any, Dict, Optional, Set, Union

from pydantic import BaseModel, ValidationError as PydanticValidationError
from starlette.websockets import WebSocketState

from ..core.exceptions import ChannelError
from ..schemas.realtime import (
    AdminConnectMessage,
    JoinExamMessage,
    ViolationAlertEvent,
    ViolationMessage,
    inbound_message_adapter,
)
from ..utils.timezone import utc_now

logger = logging.getLogger(__name__)

ROLE_STUDENT = "student"
ROLE_ADMIN = "admin"

Event = Union[BaseModel, Dict[str, Any]]


class Connection:
    """A registry entry wrapping one accepted socket."""

    def __init__(self, websocket):
        self.websocket = websocket
        self.role: Optional[str] = None
        self.session_id: Optional[str] = None
        self.student_session_id: Optional[str] = None
        self.is_open = True

    @property
    def transport_open(self) -> bool:
        return (
            self.is_open
            and self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    async def send(self, payload: Dict[str, Any]) -> None:
        await self.websocket.send_json(payload)

    async def close(self, code: int = 1000) -> None:
        self.is_open = False
        try:
            await self.websocket.close(code=code)
        except Exception as e:
            # already gone on the client side
            logger.debug(f"Close on dead connection ignored: {e}")

    def __repr__(self):
        return f"<Connection role={self.role} session={self.session_id}>"


def _serialize(event: Event) -> Dict[str, Any]:
    if isinstance(event, BaseModel):
        return event.model_dump(by_alias=True, mode="json")
    return event


class BroadcastHub:
    def __init__(self, heartbeat_interval: float = 30.0):
        self.heartbeat_interval = heartbeat_interval
        self._connections: Set[Connection] = set()
        self._heartbeat_task: Optional[asyncio.Task] = None

    @property
    def connections(self) -> Set[Connection]:
        return set(self._connections)

    def stats(self) -> Dict[str, int]:
        snapshot = list(self._connections)
        return {
            "total": len(snapshot),
            "admins": sum(1 for c in snapshot if c.role == ROLE_ADMIN),
            "students": sum(1 for c in snapshot if c.role == ROLE_STUDENT),
        }

    # registry

    async def connect(self, websocket) -> Connection:
        await websocket.accept()
        connection = Connection(websocket)
        self._connections.add(connection)
        return connection

    def register(
        self,
        connection: Connection,
        role: str,
        session_id: Optional[str] = None,
        student_session_id: Optional[str] = None,
    ) -> None:
        # role is self-declared by the client and not authenticated
        if role not in (ROLE_STUDENT, ROLE_ADMIN):
            raise ChannelError(f"Unknown role: {role}")
        if not connection.is_open:
            raise ChannelError("Connection already closed")
        connection.role = role
        connection.session_id = session_id if role == ROLE_STUDENT else None
        connection.student_session_id = student_session_id if role == ROLE_STUDENT else None
        self._connections.add(connection)
        logger.info(f"Registered {connection!r}")

    def deregister(self, connection: Connection) -> None:
        connection.is_open = False
        self._connections.discard(connection)

    # delivery

    async def _deliver(self, connection: Connection, payload: Dict[str, Any]) -> bool:
        if not connection.is_open:
            return False
        try:
            await connection.send(payload)
            return True
        except Exception as e:
            logger.warning(f"Dropping {connection!r} after failed send: {e}")
            self.deregister(connection)
            return False

    async def _fan_out(self, targets, event: Event) -> int:
        payload = _serialize(event)
        results = await asyncio.gather(*(self._deliver(c, payload) for c in targets))
        return sum(1 for delivered in results if delivered)

    async def broadcast_to_admins(self, event: Event) -> int:
        targets = [c for c in list(self._connections) if c.role == ROLE_ADMIN]
        return await self._fan_out(targets, event)

    async def send_to_session(self, session_id: str, event: Event) -> int:
        """Deliver to every student connection bound to an exam session."""
        targets = [
            c for c in list(self._connections)
            if c.role == ROLE_STUDENT and c.session_id == session_id
        ]
        return await self._fan_out(targets, event)

    async def send_to_student_session(self, student_session_id: str, event: Event) -> int:
        targets = [
            c for c in list(self._connections)
            if c.role == ROLE_STUDENT and c.student_session_id == student_session_id
        ]
        return await self._fan_out(targets, event)

    # inbound frames

    def parse_message(self, raw: str):
        try:
            data = json.loads(raw)
        except (TypeError, json.JSONDecodeError) as e:
            raise ChannelError(f"Frame is not valid JSON: {e}") from e
        try:
            return inbound_message_adapter.validate_python(data)
        except PydanticValidationError as e:
            raise ChannelError(f"Unexpected message: {e.error_count()} validation errors") from e

    async def handle_message(self, connection: Connection, raw: str) -> None:
        """Process one inbound text frame. Bad frames are logged and dropped."""
        try:
            message = self.parse_message(raw)
            await self._dispatch(connection, message)
        except ChannelError as e:
            logger.warning(f"Dropped frame from {connection!r}: {e.message}")

    async def _dispatch(self, connection: Connection, message) -> None:
        if isinstance(message, JoinExamMessage):
            self.register(
                connection,
                ROLE_STUDENT,
                session_id=message.session_id,
                student_session_id=message.student_session_id,
            )
        elif isinstance(message, AdminConnectMessage):
            self.register(connection, ROLE_ADMIN)
        elif isinstance(message, ViolationMessage):
            if connection.role != ROLE_STUDENT or not connection.session_id:
                raise ChannelError("violation received before join_exam")
            await self.broadcast_to_admins(ViolationAlertEvent(
                session_id=connection.session_id,
                student_session_id=connection.student_session_id,
                violation_type=message.violation_type,
                details=message.details,
                warning_count=message.warning_count,
                timestamp=utc_now(),
            ))

    # liveness

    async def reap(self) -> int:
        """
        One liveness sweep. Protocol-level ping/pong is run by the ASGI server
        (``ws_ping_interval``/``ws_ping_timeout``), which closes a peer that
        stops answering; entries whose transport is no longer connected are
        closed and removed here.
        """
        reaped = 0
        for connection in list(self._connections):
            if connection.transport_open:
                continue
            logger.info(f"Reaping disconnected {connection!r}")
            self.deregister(connection)
            await connection.close(code=1001)
            reaped += 1
        return reaped

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            try:
                await self.reap()
            except Exception as e:
                logger.error(f"Liveness sweep failed: {e}", exc_info=True)

    def start(self) -> None:
        if self._heartbeat_task is None:
            self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())
            logger.info(f"Heartbeat started (every {self.heartbeat_interval}s)")

    async def stop(self) -> None:
        if self._heartbeat_task is not None:
            self._heartbeat_task.cancel()
            try:
                await self._heartbeat_task
            except asyncio.CancelledError:
                pass
            self._heartbeat_task = None
        for connection in list(self._connections):
            self.deregister(connection)
            await connection.close(code=1001)
