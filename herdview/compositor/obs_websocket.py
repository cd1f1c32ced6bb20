"""
OBS WebSocket Client - :class:`CompositorClient` over the obs-websocket v5 protocol.

Frames are JSON objects ``{"op": <opcode>, "d": {...}}``:

    0 Hello            server -> client on connect
    1 Identify         client -> server (rpc version, event subscriptions)
    2 Identified       server -> client, handshake complete
    5 Event            server -> client notifications
    6 Request          client -> server, correlated by ``requestId``
    7 RequestResponse  server -> client

Servers that demand a password are rejected: authenticated handshakes are
left to a proxy in front of the compositor.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import Any, Dict, List, Optional

import aiohttp

from herdview.core.asyncio_utils import create_logged_task
from herdview.core.logging_utils import get_module_logger

from .client import (
    CompositorClient,
    CompositorError,
    CompositorNotConnected,
    EventCallback,
    ItemTransform,
    SceneItem,
    SceneList,
    TransformUpdate,
)
from .retry_policy import RetryPolicy

OP_HELLO = 0
OP_IDENTIFY = 1
OP_IDENTIFIED = 2
OP_EVENT = 5
OP_REQUEST = 6
OP_REQUEST_RESPONSE = 7

RPC_VERSION = 1

# Scenes | Inputs | SceneItems | SceneItemTransformChanged (high volume, opt-in)
EVENT_SUBSCRIPTIONS = (1 << 2) | (1 << 3) | (1 << 7) | (1 << 19)

SUBPROTOCOL = "obswebsocket.json"


class ObsWebSocketClient(CompositorClient):
    """Talks to OBS Studio through an aiohttp websocket."""

    def __init__(
        self,
        url: str,
        *,
        request_timeout: float = 10.0,
        retry_policy: Optional[RetryPolicy] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.logger = get_module_logger("ObsWebSocket")
        self.url = url
        self.request_timeout = request_timeout
        self.retry_policy = retry_policy or RetryPolicy(retry_on=(CompositorError,))

        self._session = session
        self._owns_session = session is None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._reader: Optional[asyncio.Task] = None
        self._pending: Dict[str, asyncio.Future] = {}
        self._subscribers: List[EventCallback] = []
        self._closed = asyncio.Event()
        self._closed.set()

    # ------------------------------------------------------------------
    # Connection lifecycle

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._ws.closed

    def subscribe(self, callback: EventCallback) -> None:
        # Callbacks run on the reader task: they must not await requests.
        self._subscribers.append(callback)

    async def connect(self) -> None:
        if self.connected:
            return

        result = await self.retry_policy.execute(
            self._open,
            on_retry=lambda attempt, error: self.logger.warning(
                "Connecting to %s failed (%s), attempt %d/%d",
                self.url, error, attempt, self.retry_policy.max_attempts,
            ),
        )
        if not result.success:
            raise CompositorError(
                f"Unable to connect to {self.url} after {result.attempt_count} attempts: {result.final_error}"
            )

    async def _open(self) -> None:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True

        try:
            ws = await self._session.ws_connect(
                self.url,
                protocols=(SUBPROTOCOL,),
                heartbeat=30.0,
            )
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            raise CompositorError(f"websocket connect failed: {e}") from e

        try:
            await asyncio.wait_for(self._handshake(ws), timeout=self.request_timeout)
        except asyncio.TimeoutError as e:
            await ws.close()
            raise CompositorError("handshake timed out") from e
        except CompositorError:
            await ws.close()
            raise

        self._ws = ws
        self._closed.clear()
        self._reader = create_logged_task(
            self._read_loop(ws), logger=self.logger, context="obs-websocket-reader"
        )
        self.logger.info("Connected to %s", self.url)

    async def _handshake(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        hello = await self._receive_frame(ws)
        if hello.get("op") != OP_HELLO:
            raise CompositorError(f"expected Hello, got op {hello.get('op')}")

        data = hello.get("d") or {}
        if data.get("authentication"):
            raise CompositorError("server requires authentication, which is not supported")

        await ws.send_json({
            "op": OP_IDENTIFY,
            "d": {"rpcVersion": RPC_VERSION, "eventSubscriptions": EVENT_SUBSCRIPTIONS},
        })

        identified = await self._receive_frame(ws)
        if identified.get("op") != OP_IDENTIFIED:
            raise CompositorError(f"expected Identified, got op {identified.get('op')}")

    @staticmethod
    async def _receive_frame(ws: aiohttp.ClientWebSocketResponse) -> Dict[str, Any]:
        msg = await ws.receive()
        if msg.type != aiohttp.WSMsgType.TEXT:
            raise CompositorError(f"unexpected websocket message {msg.type!r} during handshake")
        try:
            frame = msg.json()
        except ValueError as e:
            raise CompositorError(f"invalid JSON frame: {e}") from e
        if not isinstance(frame, dict):
            raise CompositorError("frame is not an object")
        return frame

    async def disconnect(self) -> None:
        ws, self._ws = self._ws, None
        if ws is not None and not ws.closed:
            await ws.close()
        if self._reader is not None:
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
            self._reader = None
        self._fail_pending("connection closed")
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
        self._closed.set()

    async def wait_closed(self) -> None:
        """Block until the current connection drops."""
        await self._closed.wait()

    # ------------------------------------------------------------------
    # Frame handling

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    try:
                        frame = msg.json()
                    except ValueError:
                        self.logger.warning("Dropping non-JSON frame: %.100s", msg.data)
                        continue
                    await self._handle_frame(frame)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    self.logger.error("Websocket error: %s", ws.exception())
                    break
        finally:
            self.logger.info("Connection to %s closed", self.url)
            if self._ws is ws:
                self._ws = None
            self._fail_pending("connection closed")
            self._closed.set()

    async def _handle_frame(self, frame: Dict[str, Any]) -> None:
        op = frame.get("op")
        data = frame.get("d") or {}

        if op == OP_REQUEST_RESPONSE:
            future = self._pending.pop(data.get("requestId"), None)
            if future is None or future.done():
                return
            status = data.get("requestStatus") or {}
            if status.get("result"):
                future.set_result(data.get("responseData") or {})
            else:
                future.set_exception(CompositorError(
                    status.get("comment") or f"request failed with code {status.get('code')}",
                    request_type=data.get("requestType"),
                    code=status.get("code"),
                ))
        elif op == OP_EVENT:
            event_type = data.get("eventType", "")
            event_data = data.get("eventData") or {}
            for callback in list(self._subscribers):
                await callback(event_type, event_data)

    def _fail_pending(self, reason: str) -> None:
        pending, self._pending = self._pending, {}
        for future in pending.values():
            if not future.done():
                future.set_exception(CompositorNotConnected(reason))

    async def request(self, request_type: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Send one request and wait for its response data."""
        ws = self._ws
        if ws is None or ws.closed:
            raise CompositorNotConnected(f"{request_type}: not connected", request_type=request_type)

        request_id = uuid.uuid4().hex
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        frame: Dict[str, Any] = {"requestType": request_type, "requestId": request_id}
        if data:
            frame["requestData"] = data

        try:
            await ws.send_json({"op": OP_REQUEST, "d": frame})
            return await asyncio.wait_for(future, timeout=self.request_timeout)
        except asyncio.TimeoutError as e:
            raise CompositorError(f"{request_type} timed out", request_type=request_type) from e
        except (aiohttp.ClientError, ConnectionError) as e:
            raise CompositorError(f"{request_type} failed: {e}", request_type=request_type) from e
        finally:
            self._pending.pop(request_id, None)

    # ------------------------------------------------------------------
    # CompositorClient calls

    async def get_scene_list(self) -> SceneList:
        return SceneList.from_payload(await self.request("GetSceneList"))

    async def get_scene_items(self, scene: str) -> List[SceneItem]:
        data = await self.request("GetSceneItemList", {"sceneName": scene})
        return [SceneItem.from_payload(item) for item in data.get("sceneItems") or []]

    async def get_item_transform(self, scene: str, item_id: int) -> ItemTransform:
        data = await self.request(
            "GetSceneItemTransform", {"sceneName": scene, "sceneItemId": item_id}
        )
        return ItemTransform.from_payload(data.get("sceneItemTransform") or {})

    async def set_item_enabled(self, scene: str, item_id: int, enabled: bool) -> None:
        await self.request(
            "SetSceneItemEnabled",
            {"sceneName": scene, "sceneItemId": item_id, "sceneItemEnabled": enabled},
        )

    async def set_item_transform(self, scene: str, item_id: int, transform: TransformUpdate) -> None:
        await self.request(
            "SetSceneItemTransform",
            {"sceneName": scene, "sceneItemId": item_id, "sceneItemTransform": transform.to_payload()},
        )

    async def set_current_scene(self, scene: str) -> None:
        await self.request("SetCurrentProgramScene", {"sceneName": scene})


__all__ = ["ObsWebSocketClient", "EVENT_SUBSCRIPTIONS"]
