"""
WAHA (WhatsApp HTTP API) messaging client.

WAHA runs the browser-automation engine (whatsapp-web.js in headless
Chromium) in a sidecar container and keeps its own session credentials,
keyed by the session name. This adapter drives one WAHA session:

  initialize  → POST /api/sessions/{name}/start  (creates it on 404)
  events      → polls GET /api/sessions/{name} and translates status changes
  lookup      → GET  /api/contacts/check-exists
  send        → POST /api/sendText | /api/sendImage
  destroy     → POST /api/sessions/{name}/stop

Status → event mapping:
  SCAN_QR_CODE                 → qr (payload from /api/{name}/auth/qr?format=raw)
  WORKING                      → authenticated, ready
  FAILED before first WORKING  → auth_failure
  FAILED / STOPPED after WORKING → disconnected
  unexpected poll loop error   → disconnected

Once disconnected or failed the handle is spent; the session controller
builds a fresh client for the next attempt.
"""

import asyncio
import contextlib
import logging
from typing import Any, Optional

import httpx

from .base import STATE_CONNECTED, MessagingClient
from .errors import MessagingClientError, SessionClosedError, TransientSendFailure
from .types import MediaPayload, MessageContent, NumberId, SentMessage, extract_message_id

logger = logging.getLogger(__name__)

STATUS_WORKING = "WORKING"
STATUS_SCAN_QR = "SCAN_QR_CODE"
STATUS_FAILED = "FAILED"
STATUS_STOPPED = "STOPPED"


class WAHAMessagingClient(MessagingClient):
    """MessagingClient backed by a WAHA session."""

    def __init__(
        self,
        base_url: str,
        session_name: str = "gateway-client",
        api_key: Optional[str] = None,
        poll_interval_s: float = 2.0,
        timeout_s: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: WAHA base URL, e.g. http://waha:3000
            session_name: WAHA session name (persisted credentials key)
            api_key: Value for the X-Api-Key header, if WAHA requires one
            poll_interval_s: Delay between session status polls
            timeout_s: Per-request timeout
            transport: Optional httpx transport (tests inject MockTransport)
        """
        super().__init__()
        self.base_url = base_url.rstrip("/")
        self.session_name = session_name
        self.api_key = api_key
        self.poll_interval_s = poll_interval_s
        self.timeout_s = timeout_s
        self._transport = transport

        self._http: Optional[httpx.AsyncClient] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._closed = False
        self._status: Optional[str] = None
        self._was_working = False
        self._last_qr: Optional[str] = None

    # ── HTTP plumbing ─────────────────────────────────────────

    def _build_http(self) -> httpx.AsyncClient:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.api_key:
            headers["X-Api-Key"] = self.api_key
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=httpx.Timeout(self.timeout_s, connect=min(self.timeout_s, 10.0)),
            transport=self._transport,
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        if self._closed or self._http is None:
            raise SessionClosedError("Session closed")

        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            if self._closed:
                raise SessionClosedError("Session closed") from e
            raise TransientSendFailure(f"Timeout calling WAHA {path}") from e
        except httpx.RequestError as e:
            if self._closed:
                raise SessionClosedError("Session closed") from e
            raise TransientSendFailure(f"WAHA request {path} failed: {e}") from e
        except RuntimeError as e:
            # httpx refuses requests on a client closed mid-flight
            if self._closed:
                raise SessionClosedError("Session closed") from e
            raise

        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> Any:
        status_code = response.status_code
        if status_code in (401, 403):
            raise MessagingClientError("WAHA rejected the API key", status_code=status_code)
        if status_code == 404:
            raise MessagingClientError(f"WAHA resource not found: {response.url.path}", status_code=404)
        if status_code >= 500:
            raise TransientSendFailure(f"WAHA server error: {status_code}", status_code=status_code)
        if status_code >= 400:
            raise MessagingClientError(
                f"WAHA request failed: {status_code} - {response.text}",
                status_code=status_code,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {"raw": response.text}

    # ── Lifecycle ─────────────────────────────────────────────

    async def initialize(self) -> None:
        if self._closed:
            raise SessionClosedError("Session closed")

        self._http = self._build_http()
        try:
            await self._request("POST", f"/api/sessions/{self.session_name}/start")
        except MessagingClientError as e:
            if e.status_code == 404:
                logger.info(f"WAHA session '{self.session_name}' not found, creating it")
                await self._request(
                    "POST", "/api/sessions", json={"name": self.session_name, "start": True}
                )
            elif e.status_code == 422:
                logger.info(f"WAHA session '{self.session_name}' already started")
            else:
                raise

        self._poll_task = asyncio.create_task(self._poll_status())
        logger.info(f"WAHA session '{self.session_name}' starting at {self.base_url}")

    async def destroy(self) -> None:
        if self._closed:
            return
        self._closed = True

        task, self._poll_task = self._poll_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        http, self._http = self._http, None
        if http is None:
            return
        try:
            await http.post(f"/api/sessions/{self.session_name}/stop")
        except httpx.HTTPError as e:
            logger.warning(f"Failed to stop WAHA session '{self.session_name}': {e}")
        finally:
            await http.aclose()

    def is_transport_open(self) -> bool:
        if self._closed or self._http is None or self._http.is_closed:
            return False
        return self._poll_task is not None and not self._poll_task.done()

    # ── Status polling → events ───────────────────────────────

    async def _poll_status(self) -> None:
        while not self._closed:
            try:
                data = await self._request("GET", f"/api/sessions/{self.session_name}")
                if not isinstance(data, dict):
                    raise MessagingClientError(f"Unexpected WAHA session payload: {data!r}")
                if not await self._handle_status(data.get("status")):
                    return
            except SessionClosedError:
                return
            except MessagingClientError as e:
                logger.warning(f"WAHA status poll failed: {e}")
            except Exception as e:
                logger.error(f"WAHA status polling stopped: {e}", exc_info=True)
                self._poll_failed(str(e))
                return
            await asyncio.sleep(self.poll_interval_s)

    def _poll_failed(self, reason: str) -> None:
        """Report a dead poll loop as a disconnect."""
        self._status = None
        self.emit("disconnected", f"POLL_ERROR: {reason}")

    async def _handle_status(self, status: Optional[str]) -> bool:
        """Translate a status reading into events. Returns False once spent."""
        previous, self._status = self._status, status
        if status != previous:
            self.emit("change_state", status)

        if status == STATUS_SCAN_QR:
            qr = await self._fetch_qr()
            if qr and qr != self._last_qr:
                self._last_qr = qr
                self.emit("qr", qr)

        elif status == STATUS_WORKING:
            if previous != STATUS_WORKING:
                self._was_working = True
                self.emit("authenticated")
                self.emit("ready")

        elif status == STATUS_FAILED:
            if self._was_working:
                self.emit("disconnected", STATUS_FAILED)
            else:
                self.emit("auth_failure", "Session failed before pairing completed")
            return False

        elif status == STATUS_STOPPED and self._was_working:
            self.emit("disconnected", STATUS_STOPPED)
            return False

        return True

    async def _fetch_qr(self) -> Optional[str]:
        try:
            data = await self._request(
                "GET", f"/api/{self.session_name}/auth/qr", params={"format": "raw"}
            )
        except MessagingClientError as e:
            logger.warning(f"Could not fetch QR code: {e}")
            return None
        if not isinstance(data, dict):
            return None
        return data.get("value") or None

    # ── Operations ────────────────────────────────────────────

    async def get_state(self) -> str:
        data = await self._request("GET", f"/api/sessions/{self.session_name}")
        status = data.get("status") if isinstance(data, dict) else None
        if status == STATUS_WORKING:
            return STATE_CONNECTED
        return status or "UNKNOWN"

    async def get_number_id(self, address: str) -> Optional[NumberId]:
        phone = address.split("@", 1)[0].lstrip("+")
        data = await self._request(
            "GET",
            "/api/contacts/check-exists",
            params={"phone": phone, "session": self.session_name},
        )
        if not data.get("numberExists"):
            return None
        return NumberId(serialized=data.get("chatId") or f"{phone}@c.us", user=phone)

    async def send_message(
        self,
        chat_id: str,
        content: MessageContent,
        caption: Optional[str] = None,
    ) -> SentMessage:
        if isinstance(content, MediaPayload):
            data = await self._request(
                "POST",
                "/api/sendImage",
                json={
                    "session": self.session_name,
                    "chatId": chat_id,
                    "file": {
                        "mimetype": content.mimetype,
                        "filename": content.filename,
                        "data": content.data,
                    },
                    "caption": caption or "",
                },
            )
        else:
            data = await self._request(
                "POST",
                "/api/sendText",
                json={"session": self.session_name, "chatId": chat_id, "text": content},
            )

        return SentMessage(
            id=extract_message_id(data),
            chat_id=chat_id,
            raw=data if isinstance(data, dict) else None,
        )
