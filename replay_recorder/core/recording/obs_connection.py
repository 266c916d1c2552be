"""
OBS Connection - Recording control over obs-websocket (protocol v5).

Keeps one WebSocket open to OBS Studio, correlates request/response pairs
by ``requestId`` and mirrors the record output state from
``RecordStateChanged`` events so that state queries never have to wait
on the network.
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import itertools
import json
from typing import Any, Callable, Dict, List, Optional

import aiohttp

from replay_recorder.core.asyncio_utils import cancel_task, create_logged_task
from replay_recorder.core.logging_utils import get_module_logger

from .actions import (
    REQUEST_TYPES,
    OBSAuthenticationError,
    OBSConnectionError,
    OBSRequestError,
    RecordingAction,
)
from .retry_policy import RetryPolicy

logger = get_module_logger("OBSConnection")

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 4455
RPC_VERSION = 1

# obs-websocket opcodes
OP_HELLO = 0
OP_IDENTIFY = 1
OP_IDENTIFIED = 2
OP_EVENT = 5
OP_REQUEST = 6
OP_REQUEST_RESPONSE = 7

# EventSubscription.Outputs
EVENT_SUBSCRIPTION_OUTPUTS = 1 << 6

OUTPUT_STARTED = "OBS_WEBSOCKET_OUTPUT_STARTED"
OUTPUT_STOPPED = "OBS_WEBSOCKET_OUTPUT_STOPPED"
OUTPUT_PAUSED = "OBS_WEBSOCKET_OUTPUT_PAUSED"
OUTPUT_RESUMED = "OBS_WEBSOCKET_OUTPUT_RESUMED"

StatusListener = Callable[[bool], None]


def build_auth_string(password: str, salt: str, challenge: str) -> str:
    """Answer the Hello challenge: b64(sha256(b64(sha256(password + salt)) + challenge))."""
    secret = base64.b64encode(hashlib.sha256((password + salt).encode("utf-8")).digest())
    digest = hashlib.sha256(secret + challenge.encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


class OBSConnection:
    """
    Remote recording controller for OBS Studio.

    ``is_connected``/``is_recording`` read cached state and never suspend.
    ``set_recording_state`` suspends for the request round-trip and may
    raise an ``OBSError``.

    Usage:
        connection = OBSConnection()
        if await connection.connect("localhost", 4455, password="secret"):
            await connection.set_recording_state(RecordingAction.START)
    """

    def __init__(
        self,
        *,
        request_timeout: float = 10.0,
        handshake_timeout: float = 5.0,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.request_timeout = request_timeout
        self.handshake_timeout = handshake_timeout
        self.retry_policy = retry_policy or RetryPolicy(max_attempts=3, base_delay=1.0, max_delay=10.0)

        self._session: Optional[aiohttp.ClientSession] = None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._pending: Dict[str, asyncio.Future] = {}
        self._request_ids = itertools.count(1)
        self._status_listeners: List[StatusListener] = []

        self._connected = False
        self._recording = False
        self._paused = False

    # ------------------------------------------------------------------
    # State queries

    def is_connected(self) -> bool:
        return self._connected

    def is_recording(self) -> bool:
        return self._connected and self._recording

    def is_paused(self) -> bool:
        return self.is_recording() and self._paused

    def add_status_listener(self, listener: StatusListener) -> None:
        if listener not in self._status_listeners:
            self._status_listeners.append(listener)

    def remove_status_listener(self, listener: StatusListener) -> None:
        if listener in self._status_listeners:
            self._status_listeners.remove(listener)

    # ------------------------------------------------------------------
    # Connection lifecycle

    async def connect(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        password: str = "",
    ) -> bool:
        """Connect and identify, retrying with backoff. Returns success."""
        if self._connected:
            await self.disconnect()

        url = f"ws://{host}:{port}"
        logger.info("Connecting to OBS at %s", url)

        result = await self.retry_policy.execute(
            operation=lambda: self._try_connect(url, password),
            on_retry=lambda attempt, error: logger.warning(
                "OBS connection attempt %d failed previously: %s", attempt - 1, error
            ),
        )

        if not result.success:
            logger.error(
                "Could not connect to OBS after %d attempt(s): %s",
                result.attempt_count,
                result.final_error,
            )
            await self._close_session()
            return False

        logger.info(
            "Connected to OBS (recording=%s, paused=%s)",
            self._recording,
            self._paused,
        )
        return True

    async def disconnect(self) -> None:
        ws = self._ws
        self._ws = None
        if ws is not None and not ws.closed:
            await ws.close()
        await cancel_task(self._reader_task)
        self._reader_task = None
        self._mark_disconnected("disconnect requested")
        await self._close_session()

    async def _close_session(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _try_connect(self, url: str, password: str) -> bool:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()

        try:
            ws = await self._session.ws_connect(url, heartbeat=30.0)
        except (aiohttp.ClientError, OSError) as exc:
            raise OBSConnectionError(f"Could not reach OBS at {url}: {exc}") from exc

        try:
            await self._identify(ws, password)
        except OBSAuthenticationError:
            await ws.close()
            self.retry_policy.abort()
            raise
        except BaseException:
            await ws.close()
            raise

        self._ws = ws
        self._connected = True
        self._reader_task = create_logged_task(
            self._reader_loop(ws),
            logger=logger,
            context="OBSConnection.reader",
        )

        try:
            await self.refresh_record_status()
        except OBSRequestError as exc:
            logger.warning("Could not read record status: %s", exc)
        except OBSConnectionError:
            self._ws = None
            self._connected = False
            await ws.close()
            await cancel_task(self._reader_task)
            self._reader_task = None
            raise

        self._notify_status(True)
        return True

    async def _receive_json(self, ws: aiohttp.ClientWebSocketResponse) -> Dict[str, Any]:
        try:
            msg = await asyncio.wait_for(ws.receive(), timeout=self.handshake_timeout)
        except asyncio.TimeoutError as exc:
            raise OBSConnectionError("Timed out waiting for OBS handshake") from exc

        if msg.type == aiohttp.WSMsgType.TEXT:
            return json.loads(msg.data)
        if msg.type in (aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSING, aiohttp.WSMsgType.CLOSED):
            code = ws.close_code if ws.close_code is not None else msg.data
            raise OBSAuthenticationError(f"OBS closed the connection during handshake (code {code})")
        raise OBSConnectionError(f"Unexpected handshake message type: {msg.type}")

    async def _identify(self, ws: aiohttp.ClientWebSocketResponse, password: str) -> None:
        hello = await self._receive_json(ws)
        if hello.get("op") != OP_HELLO:
            raise OBSConnectionError(f"Expected Hello, got op {hello.get('op')}")

        hello_data = hello.get("d") or {}
        identify: Dict[str, Any] = {
            "rpcVersion": RPC_VERSION,
            "eventSubscriptions": EVENT_SUBSCRIPTION_OUTPUTS,
        }

        auth = hello_data.get("authentication")
        if auth:
            if not password:
                raise OBSAuthenticationError("OBS requires a password but none is configured")
            identify["authentication"] = build_auth_string(password, auth["salt"], auth["challenge"])

        await ws.send_json({"op": OP_IDENTIFY, "d": identify})

        identified = await self._receive_json(ws)
        if identified.get("op") != OP_IDENTIFIED:
            raise OBSAuthenticationError(f"Expected Identified, got op {identified.get('op')}")

    # ------------------------------------------------------------------
    # Incoming messages

    async def _reader_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    try:
                        message = json.loads(msg.data)
                    except json.JSONDecodeError:
                        logger.warning("Discarding malformed message: %s", msg.data[:100])
                        continue
                    self._dispatch(message)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    logger.warning("WebSocket error: %s", ws.exception())
                    break
        finally:
            if self._ws is ws:
                self._ws = None
                self._mark_disconnected(f"socket closed (code {ws.close_code})")

    def _dispatch(self, message: Dict[str, Any]) -> None:
        op = message.get("op")
        data = message.get("d") or {}

        if op == OP_REQUEST_RESPONSE:
            future = self._pending.get(data.get("requestId", ""))
            if future is not None and not future.done():
                future.set_result(data)
        elif op == OP_EVENT:
            self._handle_event(data.get("eventType", ""), data.get("eventData") or {})

    def _handle_event(self, event_type: str, event_data: Dict[str, Any]) -> None:
        if event_type != "RecordStateChanged":
            return

        state = event_data.get("outputState")
        if state == OUTPUT_STARTED:
            self._recording, self._paused = True, False
        elif state == OUTPUT_STOPPED:
            self._recording, self._paused = False, False
        elif state == OUTPUT_PAUSED:
            self._paused = True
        elif state == OUTPUT_RESUMED:
            self._paused = False
        else:
            return
        logger.debug("Record state changed: %s", state)

    def _mark_disconnected(self, reason: str) -> None:
        was_connected = self._connected
        self._connected = False
        self._recording = False
        self._paused = False

        for future in self._pending.values():
            if not future.done():
                future.set_exception(OBSConnectionError(f"Connection lost: {reason}"))
        self._pending.clear()

        if was_connected:
            logger.info("Disconnected from OBS: %s", reason)
            self._notify_status(False)

    def _notify_status(self, connected: bool) -> None:
        for listener in list(self._status_listeners):
            try:
                listener(connected)
            except Exception as e:
                logger.error("Status listener error: %s", e, exc_info=True)

    # ------------------------------------------------------------------
    # Requests

    async def request(self, request_type: str, request_data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Send one request and wait for its response data."""
        ws = self._ws
        if not self._connected or ws is None:
            raise OBSConnectionError(f"Cannot send {request_type}: not connected to OBS")

        request_id = f"{request_type}-{next(self._request_ids)}"
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        payload = {
            "op": OP_REQUEST,
            "d": {
                "requestType": request_type,
                "requestId": request_id,
                "requestData": request_data or {},
            },
        }

        try:
            await ws.send_json(payload)
            response = await asyncio.wait_for(future, timeout=self.request_timeout)
        except asyncio.TimeoutError as exc:
            raise OBSConnectionError(f"{request_type} timed out after {self.request_timeout}s") from exc
        except (aiohttp.ClientError, ConnectionResetError) as exc:
            raise OBSConnectionError(f"Failed to send {request_type}: {exc}") from exc
        finally:
            self._pending.pop(request_id, None)

        status = response.get("requestStatus") or {}
        if not status.get("result"):
            raise OBSRequestError(request_type, int(status.get("code", 0)), status.get("comment", ""))

        return response.get("responseData") or {}

    async def refresh_record_status(self) -> None:
        status = await self.request("GetRecordStatus")
        self._recording = bool(status.get("outputActive"))
        self._paused = bool(status.get("outputPaused")) and self._recording

    def _needs_request(self, action: RecordingAction) -> bool:
        if action is RecordingAction.START:
            return not self._recording
        if action is RecordingAction.STOP:
            return self._recording
        if action is RecordingAction.PAUSE:
            return self._recording and not self._paused
        return self._recording and self._paused

    async def set_recording_state(self, action: RecordingAction) -> None:
        """Move the record output to ``action``; no-op if already there."""
        if not self._connected:
            raise OBSConnectionError(f"Cannot {action.value} recording: not connected to OBS")

        if not self._needs_request(action):
            logger.debug("Recording already in state for %s, skipping", action.value)
            return

        await self.request(REQUEST_TYPES[action])
        logger.info("Recording action sent: %s", action.value)

        if action is RecordingAction.START:
            self._recording, self._paused = True, False
        elif action is RecordingAction.STOP:
            self._recording, self._paused = False, False
        elif action is RecordingAction.PAUSE:
            self._paused = True
        else:
            self._paused = False
