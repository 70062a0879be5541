"""Gateway control plane -- health, pairing and outbound send endpoints."""

from __future__ import annotations

import asyncio
import hmac
import json
import logging
from typing import Any

from aiohttp import web

from ...errors import GatewayError
from ...messaging.addresses import (
    is_group_address,
    normalize_private_target,
    normalize_user_id,
    private_target_from_query,
)
from ...messaging.sender import SendGateway
from ...qr import qr_svg
from ...session.lifecycle import LifecycleManager

logger = logging.getLogger(__name__)


def _error(message: str, status: int, **extra: Any) -> web.Response:
    return web.json_response({"ok": False, "error": message, **extra}, status=status)


class GatewayRoutes:
    """REST bridge onto the lifecycle manager and the send gateway."""

    def __init__(
        self,
        lifecycle: LifecycleManager,
        gateway: SendGateway,
        send_token: str = "",
    ) -> None:
        self._lifecycle = lifecycle
        self._gateway = gateway
        self._send_token = send_token
        self._tasks: set[asyncio.Task[None]] = set()

    def register(self, router: web.UrlDispatcher) -> None:
        router.add_get("/health", self._health)
        router.add_get("/qr", self._qr)
        router.add_get("/sendText", self._send_text)
        router.add_post("/send-private", self._send_private)
        router.add_post("/send-group", self._send_group)
        router.add_post("/logout", self._logout)
        router.add_post("/reset-session", self._reset_session)

    # -- helpers -----------------------------------------------------------

    def _authorized(self, req: web.Request) -> bool:
        if not self._send_token:
            return True
        auth = req.headers.get("Authorization", "")
        return hmac.compare_digest(auth, f"Bearer {self._send_token}")

    @staticmethod
    async def _json_body(req: web.Request) -> dict[str, Any]:
        try:
            body = await req.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return {}
        return body if isinstance(body, dict) else {}

    def _start_in_background(self) -> None:
        task = asyncio.create_task(self._lifecycle.start())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # -- handlers ----------------------------------------------------------

    async def _health(self, _req: web.Request) -> web.Response:
        return web.json_response({"ok": True, "ready": self._lifecycle.is_ready})

    async def _qr(self, _req: web.Request) -> web.Response:
        if self._lifecycle.is_ready:
            return web.Response(status=200, text="Sudah tersambung. Tidak ada QR.")
        qr = self._lifecycle.pending_qr
        if not qr:
            if not self._lifecycle.is_starting:
                self._start_in_background()
            return web.Response(status=202, text="Menunggu QR, coba lagi sebentar...")
        try:
            svg = qr_svg(qr)
        except Exception:
            logger.exception("Failed to render pairing QR")
            return web.Response(status=500, text="Gagal merender QR")
        return web.Response(text=svg, content_type="image/svg+xml")

    async def _send_text(self, req: web.Request) -> web.Response:
        to = req.query.get("to", "").strip()
        text = req.query.get("text", "")
        if not to or not text:
            return _error("to & text required", 400)
        jid, error = private_target_from_query(to)
        if error:
            return _error(error, 400)
        try:
            await self._gateway.send_text(jid, text)
        except GatewayError as exc:
            logger.error("/sendText to %s failed: %s", jid, exc)
            return _error(str(exc), 500, ready=self._lifecycle.is_ready)
        return web.json_response({"ok": True})

    async def _send_private(self, req: web.Request) -> web.Response:
        if not self._authorized(req):
            return _error("unauthorized", 401)
        body = await self._json_body(req)
        to, text = body.get("to"), body.get("text")
        if not to or not text:
            return _error("to & text required", 400)
        jid, error = normalize_private_target(to)
        if error:
            return _error(error, 400)
        try:
            await self._gateway.send_text(jid, str(text))
        except GatewayError as exc:
            logger.error("/send-private to %s failed: %s", jid, exc)
            return _error(str(exc), 500)
        return web.json_response({"ok": True, "jid": jid})

    async def _send_group(self, req: web.Request) -> web.Response:
        if not self._authorized(req):
            return _error("unauthorized", 401)
        body = await self._json_body(req)
        gid, text, mentions = body.get("gid"), body.get("text"), body.get("mentions")
        if not gid or not text:
            return _error("gid & text required", 400)
        if not is_group_address(gid):
            return _error("gid must be a group JID (ending in @g.us)", 400)
        mention_ids = (
            [normalize_user_id(str(m)) for m in mentions] if isinstance(mentions, list) else []
        )
        try:
            await self._gateway.send_text(gid, str(text), mention_ids)
        except GatewayError as exc:
            logger.error("/send-group to %s failed: %s", gid, exc)
            return _error(str(exc), 500)
        return web.json_response({"ok": True, "gid": gid, "mentioned": len(mention_ids)})

    async def _logout(self, _req: web.Request) -> web.Response:
        await self._lifecycle.logout()
        return web.json_response({"ok": True, "message": "Logged out. Open /qr to scan new code."})

    async def _reset_session(self, _req: web.Request) -> web.Response:
        await self._lifecycle.reset_session()
        return web.json_response({"ok": True, "message": "Session cleared. Reload /qr to scan."})
