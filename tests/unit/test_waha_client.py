"""
WAHA Messaging Client Tests

The WAHA sidecar is replaced by httpx.MockTransport; no network access.
"""

import asyncio
import json

import httpx
import pytest

from messaging import (
    STATE_CONNECTED,
    MediaPayload,
    MessagingClientError,
    SessionClosedError,
    TransientSendFailure,
    WAHAMessagingClient,
)


class FakeWAHA:
    """Minimal WAHA API: records requests, answers from a route table."""

    def __init__(self, status="STARTING", session_exists=True):
        self.status = status
        self.session_exists = session_exists
        self.requests = []
        self.routes = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)

        if key in self.routes:
            route = self.routes[key]
            if callable(route):
                return route(request)
            return httpx.Response(route.status_code, content=route.content, headers=route.headers)

        if key == ("POST", "/api/sessions/test/start"):
            if not self.session_exists:
                return httpx.Response(404, json={"message": "Session not found"})
            return httpx.Response(201, json={"name": "test", "status": "STARTING"})
        if key == ("POST", "/api/sessions"):
            return httpx.Response(201, json={"name": "test", "status": "STARTING"})
        if key == ("GET", "/api/sessions/test"):
            return httpx.Response(200, json={"name": "test", "status": self.status})
        if key == ("POST", "/api/sessions/test/stop"):
            return httpx.Response(201, json={})
        return httpx.Response(404, json={"message": "unknown route"})

    def paths(self, method):
        return [r.url.path for r in self.requests if r.method == method]

    def requests_to(self, path):
        return [r for r in self.requests if r.url.path == path]


def make_client(fake: FakeWAHA, **kwargs) -> WAHAMessagingClient:
    return WAHAMessagingClient(
        base_url="http://waha:3000",
        session_name="test",
        poll_interval_s=kwargs.pop("poll_interval_s", 60),
        transport=httpx.MockTransport(fake),
        **kwargs,
    )


class TestLifecycle:
    """Test initialize/destroy and status polling."""

    @pytest.mark.asyncio
    async def test_initialize_creates_missing_session(self):
        fake = FakeWAHA(status="WORKING", session_exists=False)
        client = make_client(fake, api_key="secret")
        ready = asyncio.Event()
        client.on("ready", ready.set)

        await client.initialize()
        await asyncio.wait_for(ready.wait(), timeout=1)

        created = [r for r in fake.requests if r.url.path == "/api/sessions"]
        assert json.loads(created[0].content) == {"name": "test", "start": True}
        assert all(r.headers["X-Api-Key"] == "secret" for r in fake.requests)
        assert client.is_transport_open() is True
        assert await client.get_state() == STATE_CONNECTED

        await client.destroy()

        assert "/api/sessions/test/stop" in fake.paths("POST")
        assert client.is_transport_open() is False

    @pytest.mark.asyncio
    async def test_initialize_tolerates_started_session(self):
        fake = FakeWAHA()
        fake.routes[("POST", "/api/sessions/test/start")] = httpx.Response(
            422, json={"message": "Session already started"}
        )
        client = make_client(fake)

        await client.initialize()
        assert client.is_transport_open() is True
        await client.destroy()

    @pytest.mark.asyncio
    async def test_initialize_rejected_key(self):
        fake = FakeWAHA()
        fake.routes[("POST", "/api/sessions/test/start")] = httpx.Response(401)
        client = make_client(fake)

        with pytest.raises(MessagingClientError) as exc_info:
            await client.initialize()

        assert exc_info.value.status_code == 401
        await client.destroy()

    @pytest.mark.asyncio
    async def test_calls_after_destroy_raise_session_closed(self):
        client = make_client(FakeWAHA())
        await client.initialize()
        await client.destroy()

        with pytest.raises(SessionClosedError):
            await client.send_message("12345678901@c.us", "hi")
        with pytest.raises(SessionClosedError):
            await client.get_state()


class TestStatusEvents:
    """Test status → event translation."""

    @pytest.mark.asyncio
    async def test_qr_emitted_once_per_code(self):
        fake = FakeWAHA()
        fake.routes[("GET", "/api/test/auth/qr")] = httpx.Response(200, json={"value": "2@abc"})
        client = make_client(fake)
        await client.initialize()
        codes = []
        client.on("qr", codes.append)

        await client._handle_status("SCAN_QR_CODE")
        await client._handle_status("SCAN_QR_CODE")

        assert codes == ["2@abc"]
        qr_request = [r for r in fake.requests if r.url.path == "/api/test/auth/qr"][0]
        assert qr_request.url.params["format"] == "raw"
        await client.destroy()

    @pytest.mark.asyncio
    async def test_working_then_stopped(self):
        client = make_client(FakeWAHA())
        events = []
        client.on("authenticated", lambda: events.append("authenticated"))
        client.on("ready", lambda: events.append("ready"))
        client.on("disconnected", lambda reason: events.append(f"disconnected:{reason}"))

        assert await client._handle_status("WORKING") is True
        assert await client._handle_status("WORKING") is True
        assert await client._handle_status("STOPPED") is False

        assert events == ["authenticated", "ready", "disconnected:STOPPED"]

    @pytest.mark.asyncio
    async def test_failed_before_pairing_is_auth_failure(self):
        client = make_client(FakeWAHA())
        failures = []
        disconnects = []
        client.on("auth_failure", failures.append)
        client.on("disconnected", disconnects.append)

        assert await client._handle_status("FAILED") is False

        assert len(failures) == 1
        assert disconnects == []

    @pytest.mark.asyncio
    async def test_failed_after_working_is_disconnect(self):
        client = make_client(FakeWAHA())
        disconnects = []
        client.on("disconnected", disconnects.append)

        await client._handle_status("WORKING")
        await client._handle_status("FAILED")

        assert disconnects == ["FAILED"]

    @pytest.mark.asyncio
    async def test_malformed_status_payload_keeps_polling(self):
        fake = FakeWAHA()
        polled = asyncio.Event()
        bodies = iter([{"name": "test", "status": "WORKING"}])

        def session_status(request):
            if len(fake.requests_to("/api/sessions/test")) >= 3:
                polled.set()
            return httpx.Response(200, json=next(bodies, []))

        fake.routes[("GET", "/api/sessions/test")] = session_status
        client = make_client(fake, poll_interval_s=0.01)
        events = []
        client.on("ready", lambda: events.append("ready"))
        client.on("disconnected", lambda reason: events.append("disconnected"))

        await client.initialize()
        await asyncio.wait_for(polled.wait(), timeout=1)

        assert events == ["ready"]
        assert client.is_transport_open() is True
        assert await client.get_state() != STATE_CONNECTED
        await client.destroy()

    @pytest.mark.asyncio
    async def test_poll_loop_crash_emits_disconnect(self):
        fake = FakeWAHA()
        calls = []

        def session_status(request):
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(200, json={"name": "test", "status": "WORKING"})
            raise ValueError("unexpected transport failure")

        fake.routes[("GET", "/api/sessions/test")] = session_status
        client = make_client(fake, poll_interval_s=0.01)
        events = []
        disconnected = asyncio.Event()
        client.on("ready", lambda: events.append("ready"))
        client.on("disconnected", lambda reason: (events.append(reason), disconnected.set()))

        await client.initialize()
        await asyncio.wait_for(disconnected.wait(), timeout=1)
        await asyncio.sleep(0)

        assert events[0] == "ready"
        assert events[1].startswith("POLL_ERROR")
        assert client.is_transport_open() is False
        await client.destroy()


class TestOperations:
    """Test lookups and sends."""

    @pytest.mark.asyncio
    async def test_get_number_id(self):
        fake = FakeWAHA()

        def check_exists(request):
            exists = request.url.params["phone"] == "12345678901"
            body = {"numberExists": exists}
            if exists:
                body["chatId"] = "12345678901@c.us"
            return httpx.Response(200, json=body)

        fake.routes[("GET", "/api/contacts/check-exists")] = check_exists
        client = make_client(fake)
        await client.initialize()

        number_id = await client.get_number_id("+12345678901@c.us")
        missing = await client.get_number_id("5215512345678@c.us")

        assert number_id.serialized == "12345678901@c.us"
        assert missing is None
        await client.destroy()

    @pytest.mark.asyncio
    async def test_send_text(self):
        fake = FakeWAHA()
        fake.routes[("POST", "/api/sendText")] = httpx.Response(
            201, json={"id": {"id": "3EB0ABC", "_serialized": "true_12345678901@c.us_3EB0ABC"}}
        )
        client = make_client(fake)
        await client.initialize()

        sent = await client.send_message("12345678901@c.us", "hello")

        body = json.loads(fake.requests_to("/api/sendText")[-1].content)
        assert body == {"session": "test", "chatId": "12345678901@c.us", "text": "hello"}
        assert sent.message_id == "3EB0ABC"
        await client.destroy()

    @pytest.mark.asyncio
    async def test_send_image(self):
        fake = FakeWAHA()
        fake.routes[("POST", "/api/sendImage")] = httpx.Response(201, json={"id": "true_x_IMG1"})
        client = make_client(fake)
        await client.initialize()
        media = MediaPayload(mimetype="image/jpeg", filename="a.jpg", data="AAAA")

        sent = await client.send_message("12345678901@c.us", media, caption="look")

        body = json.loads(fake.requests_to("/api/sendImage")[-1].content)
        assert body["file"] == {"mimetype": "image/jpeg", "filename": "a.jpg", "data": "AAAA"}
        assert body["caption"] == "look"
        assert sent.message_id == "true_x_IMG1"
        await client.destroy()

    @pytest.mark.asyncio
    async def test_server_error_is_transient(self):
        fake = FakeWAHA()
        fake.routes[("POST", "/api/sendText")] = httpx.Response(500, json={"error": "page crashed"})
        client = make_client(fake)
        await client.initialize()

        with pytest.raises(TransientSendFailure) as exc_info:
            await client.send_message("12345678901@c.us", "hello")

        assert exc_info.value.status_code == 500
        await client.destroy()

    @pytest.mark.asyncio
    async def test_connection_error_is_transient(self):
        fake = FakeWAHA()

        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        fake.routes[("POST", "/api/sendText")] = refuse
        client = make_client(fake)
        await client.initialize()

        with pytest.raises(TransientSendFailure):
            await client.send_message("12345678901@c.us", "hello")
        await client.destroy()
