"""Tests for the obs-websocket client against a live mock server."""

import asyncio

import pytest

from herdview.compositor.client import (
    CompositorError,
    CompositorNotConnected,
    TransformUpdate,
)
from herdview.compositor.obs_websocket import EVENT_SUBSCRIPTIONS, ObsWebSocketClient
from herdview.compositor.retry_policy import RetryPolicy
from tests.infrastructure.mocks.obs_server import MockObsServer


class TestHandshake:

    @pytest.mark.asyncio
    async def test_identify(self, obs_client, obs_server):
        await obs_client.connect()

        assert obs_client.connected
        assert obs_server.identify == {"rpcVersion": 1, "eventSubscriptions": EVENT_SUBSCRIPTIONS}

    @pytest.mark.asyncio
    async def test_connect_twice_reuses_connection(self, obs_client, obs_server):
        await obs_client.connect()
        await obs_client.connect()

        assert len(obs_server.sockets) == 1

    @pytest.mark.asyncio
    async def test_authentication_is_refused(self):
        server = MockObsServer(require_auth=True)
        await server.start()
        client = ObsWebSocketClient(server.url, retry_policy=RetryPolicy(max_attempts=1, retry_on=(CompositorError,)))
        try:
            with pytest.raises(CompositorError, match="authentication"):
                await client.connect()
            assert not client.connected
        finally:
            await client.disconnect()
            await server.close()

    @pytest.mark.asyncio
    async def test_unreachable_server_exhausts_retries(self):
        client = ObsWebSocketClient(
            "http://127.0.0.1:1/",
            retry_policy=RetryPolicy(max_attempts=2, base_delay=0.01, retry_on=(CompositorError,)),
        )
        try:
            with pytest.raises(CompositorError, match="after 2 attempts"):
                await client.connect()
        finally:
            await client.disconnect()


class TestRequests:

    @pytest.mark.asyncio
    async def test_scene_list(self, obs_client, obs_server):
        obs_server.respond("GetSceneList", {
            "currentProgramSceneName": "Main",
            "scenes": [{"sceneName": "Night", "sceneIndex": 0}, {"sceneName": "Main", "sceneIndex": 1}],
        })
        await obs_client.connect()

        scene_list = await obs_client.get_scene_list()

        assert scene_list.current == "Main"
        assert scene_list.names == ["Night", "Main"]

    @pytest.mark.asyncio
    async def test_scene_items(self, obs_client, obs_server):
        obs_server.respond("GetSceneItemList", {"sceneItems": [{
            "sceneItemId": 3,
            "sourceName": "Kidding A",
            "inputKind": "ffmpeg_source",
            "sceneItemEnabled": False,
            "sceneItemTransform": {"positionX": 1280, "positionY": 0, "width": 960, "height": 540,
                                   "sourceWidth": 1920, "sourceHeight": 1080,
                                   "scaleX": 0.5, "scaleY": 0.5},
        }]})
        await obs_client.connect()

        items = await obs_client.get_scene_items("Main")

        assert len(items) == 1
        item = items[0]
        assert (item.item_id, item.source_name, item.kind, item.enabled) == (3, "Kidding A", "ffmpeg_source", False)
        assert item.transform.source_width == 1920
        assert obs_server.requests_of("GetSceneItemList")[0]["requestData"] == {"sceneName": "Main"}

    @pytest.mark.asyncio
    async def test_single_item_lookup(self, obs_client, obs_server):
        obs_server.respond("GetSceneItemList", {"sceneItems": [
            {"sceneItemId": 1, "sourceName": "Treat", "inputKind": "ffmpeg_source"},
        ]})
        await obs_client.connect()

        assert (await obs_client.get_scene_item("Main", "Treat")).item_id == 1
        assert await obs_client.get_scene_item("Main", "Goat") is None

    @pytest.mark.asyncio
    async def test_write_payloads(self, obs_client, obs_server):
        await obs_client.connect()

        await obs_client.set_item_enabled("Main", 2, True)
        await obs_client.set_item_transform("Main", 2, TransformUpdate(0, 0, 2.0, 2.0))
        await obs_client.set_current_scene("Night")

        assert [(r["requestType"], r["requestData"]) for r in obs_server.requests] == [
            ("SetSceneItemEnabled", {"sceneName": "Main", "sceneItemId": 2, "sceneItemEnabled": True}),
            ("SetSceneItemTransform", {"sceneName": "Main", "sceneItemId": 2, "sceneItemTransform": {
                "positionX": 0, "positionY": 0, "scaleX": 2.0, "scaleY": 2.0}}),
            ("SetCurrentProgramScene", {"sceneName": "Night"}),
        ]

    @pytest.mark.asyncio
    async def test_failed_request_status(self, obs_client, obs_server):
        obs_server.respond("GetSceneItemTransform", ok=False)
        await obs_client.connect()

        with pytest.raises(CompositorError) as excinfo:
            await obs_client.get_item_transform("Main", 99)

        assert excinfo.value.code == 600
        assert excinfo.value.request_type == "GetSceneItemTransform"
        assert "No source was found" in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_unanswered_request_times_out(self, obs_client, obs_server):
        obs_server.silent.add("SetSceneItemEnabled")
        await obs_client.connect()

        with pytest.raises(CompositorError, match="timed out"):
            await obs_client.set_item_enabled("Main", 1, False)

    @pytest.mark.asyncio
    async def test_request_without_connection(self, obs_client):
        with pytest.raises(CompositorNotConnected):
            await obs_client.get_scene_list()


class TestEvents:

    @pytest.mark.asyncio
    async def test_events_reach_subscribers(self, obs_client, obs_server):
        received = []
        arrived = asyncio.Event()

        async def on_event(event_type, data):
            received.append((event_type, data))
            arrived.set()

        obs_client.subscribe(on_event)
        await obs_client.connect()

        await obs_server.emit("CurrentProgramSceneChanged", {"sceneName": "Night"})
        await asyncio.wait_for(arrived.wait(), timeout=1.0)

        assert received == [("CurrentProgramSceneChanged", {"sceneName": "Night"})]

    @pytest.mark.asyncio
    async def test_server_drop_is_noticed(self, obs_client, obs_server):
        await obs_client.connect()

        await obs_server.drop_connections()
        await asyncio.wait_for(obs_client.wait_closed(), timeout=1.0)

        assert not obs_client.connected
        with pytest.raises(CompositorNotConnected):
            await obs_client.set_current_scene("Main")
