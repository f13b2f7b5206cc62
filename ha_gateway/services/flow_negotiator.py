"""WebSocket config-flow negotiation.

Home Assistant has no REST endpoint for creating integrations such as a
new to-do list. Instead a config flow must be driven over the WebSocket
API:

    <- auth_required
    -> auth {access_token}
    <- auth_ok
    -> config_entries/flow/init {handler}                  (id 1)
    <- result {flow_id, type: form}
    -> config_entries/flow/configure {flow_id, user_input} (id 2)
    <- result {type: create_entry, title}

State flow:
    CONNECTING -> AUTH_PENDING -> AUTHENTICATED -> FLOW_CONFIGURING -> COMPLETED
    any non-terminal state -> FAILED

Protocol-level refusals (auth_invalid, success=false, aborted flows)
return a FlowOutcome with created=False: the exchange worked, Home
Assistant just said no. Transport errors, unexpected disconnects and the
session deadline raise NegotiationFailed.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Protocol

import websockets
from pydantic import BaseModel, Field
from websockets.exceptions import ConnectionClosed, WebSocketException

from ha_gateway.errors import NegotiationFailed
from ha_gateway.models import Config

logger = logging.getLogger(__name__)

DECLINED_REASON = "operation not supported"

# user_input key carrying the requested name, per integration handler
HANDLER_NAME_FIELDS: dict[str, str] = {
    "local_todo": "todo_list_name",
    "local_calendar": "calendar_name",
}
DEFAULT_NAME_FIELD = "name"


class FlowState(Enum):
    """Negotiation states."""

    CONNECTING = auto()        # Socket open, nothing sent yet
    AUTH_PENDING = auto()      # Credential sent, awaiting verdict
    AUTHENTICATED = auto()     # flow/init sent, awaiting flow id
    FLOW_CONFIGURING = auto()  # flow/configure sent, awaiting entry
    COMPLETED = auto()         # Resource created
    FAILED = auto()            # Refused, broken or timed out


TERMINAL_STATES = frozenset({FlowState.COMPLETED, FlowState.FAILED})

# (state, inbound message type) -> handler method name
TRANSITIONS: dict[tuple[FlowState, str], str] = {
    (FlowState.CONNECTING, "auth_required"): "_on_auth_required",
    (FlowState.AUTH_PENDING, "auth_ok"): "_on_auth_ok",
    (FlowState.AUTH_PENDING, "auth_invalid"): "_on_auth_invalid",
    (FlowState.AUTHENTICATED, "result"): "_on_init_result",
    (FlowState.FLOW_CONFIGURING, "result"): "_on_configure_result",
}


class FlowConnection(Protocol):
    """The subset of a websockets client connection the negotiator uses."""

    async def send(self, message: str) -> None: ...
    async def recv(self) -> str | bytes: ...
    async def close(self) -> None: ...


ConnectFn = Callable[[str], Awaitable[FlowConnection]]


class FlowOutcome(BaseModel):
    """Business outcome of a negotiation.

    Attributes:
        created: Whether Home Assistant created the resource
        detail: Title/entry details on success, refusal reason otherwise
    """

    created: bool = Field(..., description="Whether the resource was created")
    detail: dict[str, Any] = Field(default_factory=dict, description="Outcome details")


@dataclass
class FlowSession:
    """State of one negotiation attempt.

    Owned by a single negotiation and discarded with it. deadline is on
    the event loop clock.
    """

    handler: str
    user_input: dict[str, Any]
    deadline: float
    connection: FlowConnection | None = None
    state: FlowState = FlowState.CONNECTING
    next_message_id: int = 1
    pending_message_id: int | None = None
    pending_flow_id: str | None = None
    _closed: bool = field(default=False, repr=False)

    def allocate_message_id(self) -> int:
        message_id = self.next_message_id
        self.next_message_id += 1
        self.pending_message_id = message_id
        return message_id

    def transition(self, new_state: FlowState) -> None:
        logger.debug(f"Flow '{self.handler}': {self.state.name} -> {new_state.name}")
        self.state = new_state

    async def send(self, message: dict[str, Any]) -> None:
        if self.connection is None:
            raise NegotiationFailed(f"Flow '{self.handler}' has no open connection")
        await self.connection.send(json.dumps(message))

    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._closed or self.connection is None:
            return
        self._closed = True
        try:
            await self.connection.close()
        except (OSError, WebSocketException) as e:
            logger.warning(f"Error closing flow connection: {e}")


class FlowNegotiator:
    """Create resources by driving Home Assistant config flows.

    Usage:
        negotiator = FlowNegotiator(config)
        outcome = await negotiator.negotiate_create("local_todo", "Groceries")
    """

    def __init__(self, config: Config, connect: ConnectFn | None = None) -> None:
        """Initialize negotiator.

        Args:
            config: Application configuration (URL, token, deadline)
            connect: Optional connection factory (defaults to websockets)
        """
        self.url = config.websocket_url
        self.timeout = config.negotiation_timeout
        self._token = config.ha_token
        self._connect = connect or self._open_connection

    async def _open_connection(self, url: str) -> FlowConnection:
        return await websockets.connect(
            url,
            open_timeout=self.timeout,
            close_timeout=5,
            max_size=4_000_000,
        )

    def open_session(
        self, handler: str, name: str, name_field: str | None = None
    ) -> FlowSession:
        """Prepare a negotiation whose deadline starts now.

        Args:
            handler: Integration handler (e.g. 'local_todo')
            name: Requested resource name
            name_field: user_input key for the name (defaults per handler)
        """
        field_name = name_field or HANDLER_NAME_FIELDS.get(handler, DEFAULT_NAME_FIELD)
        return FlowSession(
            handler=handler,
            user_input={field_name: name},
            deadline=asyncio.get_running_loop().time() + self.timeout,
        )

    async def negotiate_create(
        self, handler: str, name: str, name_field: str | None = None
    ) -> FlowOutcome:
        """Create a resource through a config flow.

        Returns:
            FlowOutcome (created=False when Home Assistant refused)

        Raises:
            NegotiationFailed: On transport errors, disconnects or timeout
        """
        return await self.run_session(self.open_session(handler, name, name_field))

    async def run_session(self, session: FlowSession) -> FlowOutcome:
        """Drive a session until its deadline. Every failure path ends in FAILED.

        Raises:
            NegotiationFailed: On transport errors, disconnects or timeout
        """
        handler = session.handler
        remaining = max(0.0, session.deadline - asyncio.get_running_loop().time())

        try:
            outcome = await asyncio.wait_for(self._drive(session), timeout=remaining)
        except asyncio.TimeoutError as e:
            session.transition(FlowState.FAILED)
            logger.error(f"Flow '{handler}' timed out after {self.timeout}s")
            raise NegotiationFailed(
                f"Config flow '{handler}' did not complete within {self.timeout}s"
            ) from e
        except ConnectionClosed as e:
            failed_in = session.state
            session.transition(FlowState.FAILED)
            logger.error(f"Flow '{handler}' connection closed in {failed_in.name}")
            raise NegotiationFailed(
                f"Connection closed during config flow '{handler}' ({failed_in.name.lower()})"
            ) from e
        except (OSError, WebSocketException) as e:
            session.transition(FlowState.FAILED)
            logger.error(f"Flow '{handler}' transport error: {e}")
            raise NegotiationFailed(f"WebSocket error during config flow '{handler}': {e}") from e
        except NegotiationFailed:
            session.transition(FlowState.FAILED)
            raise
        finally:
            await session.close()

        logger.info(f"Flow '{handler}' finished: created={outcome.created}")
        return outcome

    async def _drive(self, session: FlowSession) -> FlowOutcome:
        """Feed inbound messages through the transition table until terminal."""
        session.connection = await self._connect(self.url)

        while True:
            message = self._decode(await session.connection.recv())
            message_type = message.get("type")
            handler_name = TRANSITIONS.get((session.state, message_type))

            if handler_name is None:
                logger.debug(f"Ignoring '{message_type}' in {session.state.name}")
                continue
            if message_type == "result" and not self._correlates(session, message):
                logger.debug(f"Ignoring result for id {message.get('id')}")
                continue

            outcome = await getattr(self, handler_name)(session, message)
            if outcome is not None:
                return outcome

    @staticmethod
    def _decode(raw: str | bytes) -> dict[str, Any]:
        try:
            message = json.loads(raw)
        except ValueError as e:
            raise NegotiationFailed(f"Malformed WebSocket message: {e}") from e
        if not isinstance(message, dict):
            raise NegotiationFailed("Malformed WebSocket message: expected an object")
        return message

    @staticmethod
    def _correlates(session: FlowSession, message: dict[str, Any]) -> bool:
        message_id = message.get("id")
        return message_id is None or message_id == session.pending_message_id

    async def _on_auth_required(self, session: FlowSession, message: dict[str, Any]) -> None:
        await session.send({"type": "auth", "access_token": self._token})
        session.transition(FlowState.AUTH_PENDING)

    async def _on_auth_ok(self, session: FlowSession, message: dict[str, Any]) -> None:
        session.transition(FlowState.AUTHENTICATED)
        await session.send(
            {
                "id": session.allocate_message_id(),
                "type": "config_entries/flow/init",
                "handler": session.handler,
            }
        )

    async def _on_auth_invalid(
        self, session: FlowSession, message: dict[str, Any]
    ) -> FlowOutcome:
        logger.warning("Home Assistant rejected the WebSocket credential")
        return self._decline(session, error=message.get("message", "authentication failed"))

    async def _on_init_result(
        self, session: FlowSession, message: dict[str, Any]
    ) -> FlowOutcome | None:
        if not message.get("success"):
            return self._decline(session, error=self._error_text(message))

        result = message.get("result") or {}
        if self._is_created(result):
            return self._complete(session, result)
        if result.get("type") == "abort":
            return self._decline(session, error=result.get("reason", "flow aborted"))

        flow_id = result.get("flow_id")
        if not flow_id:
            return self._decline(session, error="flow did not start")

        session.pending_flow_id = flow_id
        session.transition(FlowState.FLOW_CONFIGURING)
        await session.send(
            {
                "id": session.allocate_message_id(),
                "type": "config_entries/flow/configure",
                "flow_id": flow_id,
                "user_input": session.user_input,
            }
        )
        return None

    async def _on_configure_result(
        self, session: FlowSession, message: dict[str, Any]
    ) -> FlowOutcome:
        if not message.get("success"):
            return self._decline(session, error=self._error_text(message))

        result = message.get("result") or {}
        if self._is_created(result):
            return self._complete(session, result)
        if result.get("type") == "abort":
            return self._decline(session, error=result.get("reason", "flow aborted"))
        # Another form means the input was refused (e.g. duplicate name)
        return self._decline(session, error=result.get("errors") or "input not accepted")

    @staticmethod
    def _is_created(result: dict[str, Any]) -> bool:
        return result.get("type") == "create_entry" or "title" in result

    @staticmethod
    def _error_text(message: dict[str, Any]) -> Any:
        error = message.get("error")
        if isinstance(error, dict):
            return error.get("message") or error.get("code") or "request failed"
        return error or "request failed"

    def _complete(self, session: FlowSession, result: dict[str, Any]) -> FlowOutcome:
        session.transition(FlowState.COMPLETED)
        entry = result.get("result")
        entry_id = entry.get("entry_id") if isinstance(entry, dict) else None
        return FlowOutcome(
            created=True,
            detail={
                "handler": session.handler,
                "title": result.get("title"),
                "flow_id": session.pending_flow_id,
                "entry_id": entry_id,
            },
        )

    def _decline(self, session: FlowSession, error: Any) -> FlowOutcome:
        session.transition(FlowState.FAILED)
        logger.info(f"Flow '{session.handler}' declined: {error}")
        return FlowOutcome(
            created=False,
            detail={
                "reason": DECLINED_REASON,
                "handler": session.handler,
                "error": error,
            },
        )
