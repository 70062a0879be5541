"""Tests for the control-plane HTTP routes."""

from __future__ import annotations

import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

from wabridge.messaging.sender import SendGateway
from wabridge.server.routes.gateway_routes import GatewayRoutes
from wabridge.session.lifecycle import LifecycleManager, SessionState
from wabridge.session.transport import OutboundContent

from .fakes import FakeFactory, bring_up, settle, wait_until

TOKEN = "s3cret"
AUTH = {"Authorization": f"Bearer {TOKEN}"}
GROUP = "120363012345678901@g.us"


def _build_app(lifecycle: LifecycleManager, send_token: str = "") -> web.Application:
    gateway = SendGateway(lifecycle, ready_timeout=0.05, jitter_ms=(0, 0))
    app = web.Application()
    GatewayRoutes(lifecycle, gateway, send_token).register(app.router)
    return app


# -- Health & pairing ------------------------------------------------------

class TestHealthAndQr:
    @pytest.mark.asyncio
    async def test_health_reports_readiness(self, lifecycle: LifecycleManager, factory: FakeFactory) -> None:
        app = _build_app(lifecycle)
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/health")
            assert resp.status == 200
            assert await resp.json() == {"ok": True, "ready": False}

            await bring_up(lifecycle, factory)
            resp = await client.get("/health")
            assert await resp.json() == {"ok": True, "ready": True}
        await lifecycle.stop()

    @pytest.mark.asyncio
    async def test_qr_auto_starts_session(self, lifecycle: LifecycleManager, factory: FakeFactory) -> None:
        app = _build_app(lifecycle)
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/qr")
            assert resp.status == 202
            await wait_until(lambda: factory.calls == 1)

            resp = await client.get("/qr")
            assert resp.status == 202
            assert factory.calls == 1
        await lifecycle.stop()

    @pytest.mark.asyncio
    async def test_qr_serves_svg(self, lifecycle: LifecycleManager, factory: FakeFactory) -> None:
        app = _build_app(lifecycle)
        await lifecycle.start()
        factory.current.pairing("2@Zm9vYmFy,c2VjcmV0")
        await wait_until(lambda: lifecycle.pending_qr is not None)
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/qr")
            assert resp.status == 200
            assert resp.content_type == "image/svg+xml"
            assert (await resp.text()).lstrip().startswith("<svg")
        await lifecycle.stop()

    @pytest.mark.asyncio
    async def test_qr_when_connected(self, lifecycle: LifecycleManager, factory: FakeFactory) -> None:
        await bring_up(lifecycle, factory)
        app = _build_app(lifecycle)
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/qr")
            assert resp.status == 200
            assert "Sudah tersambung" in await resp.text()
        await lifecycle.stop()


# -- Legacy GET send -------------------------------------------------------

class TestSendText:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "?to=628111", "?text=hi"])
    async def test_requires_both_params(self, lifecycle: LifecycleManager, query: str) -> None:
        app = _build_app(lifecycle)
        async with TestClient(TestServer(app)) as client:
            resp = await client.get(f"/sendText{query}")
            assert resp.status == 400
            assert (await resp.json())["error"] == "to & text required"

    @pytest.mark.asyncio
    async def test_rejects_local_format(self, lifecycle: LifecycleManager) -> None:
        app = _build_app(lifecycle)
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/sendText", params={"to": "0812345678", "text": "hi"})
            assert resp.status == 400

    @pytest.mark.asyncio
    async def test_sends_when_ready(self, lifecycle: LifecycleManager, factory: FakeFactory) -> None:
        session = await bring_up(lifecycle, factory)
        app = _build_app(lifecycle)
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/sendText", params={"to": "6281111111", "text": "halo"})
            assert resp.status == 200
            assert await resp.json() == {"ok": True}
        assert session.sent == [("6281111111@s.whatsapp.net", OutboundContent(text="halo"))]
        await lifecycle.stop()

    @pytest.mark.asyncio
    async def test_not_ready_reports_500(self, lifecycle: LifecycleManager) -> None:
        app = _build_app(lifecycle)
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/sendText", params={"to": "6281111111", "text": "halo"})
            assert resp.status == 500
            data = await resp.json()
            assert data["ok"] is False
            assert data["ready"] is False


# -- Authenticated sends ---------------------------------------------------

class TestSendPrivate:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer wrong"}, {"Authorization": TOKEN}])
    async def test_rejects_bad_token(self, lifecycle: LifecycleManager, headers: dict[str, str]) -> None:
        app = _build_app(lifecycle, TOKEN)
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/send-private", json={"to": "628111111", "text": "hi"}, headers=headers)
            assert resp.status == 401
            assert await resp.json() == {"ok": False, "error": "unauthorized"}

    @pytest.mark.asyncio
    async def test_open_when_no_token_configured(self, lifecycle: LifecycleManager, factory: FakeFactory) -> None:
        await bring_up(lifecycle, factory)
        app = _build_app(lifecycle)
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/send-private", json={"to": "628111111", "text": "hi"})
            assert resp.status == 200
        await lifecycle.stop()

    @pytest.mark.asyncio
    async def test_normalizes_local_number(self, lifecycle: LifecycleManager, factory: FakeFactory) -> None:
        session = await bring_up(lifecycle, factory)
        app = _build_app(lifecycle, TOKEN)
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/send-private", json={"to": "0812-3456-789", "text": "hi"}, headers=AUTH)
            assert resp.status == 200
            assert await resp.json() == {"ok": True, "jid": "628123456789@s.whatsapp.net"}
        assert session.sent[0][0] == "628123456789@s.whatsapp.net"
        await lifecycle.stop()

    @pytest.mark.asyncio
    async def test_invalid_number(self, lifecycle: LifecycleManager) -> None:
        app = _build_app(lifecycle, TOKEN)
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/send-private", json={"to": "12345", "text": "hi"}, headers=AUTH)
            assert resp.status == 400
            assert (await resp.json())["ok"] is False

    @pytest.mark.asyncio
    async def test_missing_fields_and_bad_json(self, lifecycle: LifecycleManager) -> None:
        app = _build_app(lifecycle, TOKEN)
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/send-private", json={"to": "628111111"}, headers=AUTH)
            assert resp.status == 400
            resp = await client.post("/send-private", data="not json", headers=AUTH)
            assert resp.status == 400

    @pytest.mark.asyncio
    async def test_send_failure_is_500(self, lifecycle: LifecycleManager) -> None:
        app = _build_app(lifecycle, TOKEN)
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/send-private", json={"to": "628111111", "text": "hi"}, headers=AUTH)
            assert resp.status == 500
            assert (await resp.json())["ok"] is False


class TestSendGroup:
    @pytest.mark.asyncio
    async def test_requires_group_address(self, lifecycle: LifecycleManager) -> None:
        app = _build_app(lifecycle, TOKEN)
        async with TestClient(TestServer(app)) as client:
            resp = await client.post(
                "/send-group", json={"gid": "628111111@s.whatsapp.net", "text": "hi"}, headers=AUTH,
            )
            assert resp.status == 400

    @pytest.mark.asyncio
    async def test_sends_with_normalized_mentions(self, lifecycle: LifecycleManager, factory: FakeFactory) -> None:
        session = await bring_up(lifecycle, factory)
        app = _build_app(lifecycle, TOKEN)
        body = {"gid": GROUP, "text": "rapat jam 3", "mentions": ["628111@c.us", "628222:4@s.whatsapp.net"]}
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/send-group", json=body, headers=AUTH)
            assert resp.status == 200
            assert await resp.json() == {"ok": True, "gid": GROUP, "mentioned": 2}
        target, content = session.sent[0]
        assert target == GROUP
        assert content.mentions == ["628111@s.whatsapp.net", "628222@s.whatsapp.net"]
        await lifecycle.stop()

    @pytest.mark.asyncio
    async def test_non_list_mentions_ignored(self, lifecycle: LifecycleManager, factory: FakeFactory) -> None:
        await bring_up(lifecycle, factory)
        app = _build_app(lifecycle, TOKEN)
        async with TestClient(TestServer(app)) as client:
            resp = await client.post(
                "/send-group", json={"gid": GROUP, "text": "hi", "mentions": "628111"}, headers=AUTH,
            )
            assert (await resp.json())["mentioned"] == 0
        await lifecycle.stop()


# -- Session controls ------------------------------------------------------

class TestSessionControls:
    @pytest.mark.asyncio
    async def test_logout(self, lifecycle: LifecycleManager, factory: FakeFactory) -> None:
        lifecycle.credentials.save({"me": "x"})
        session = await bring_up(lifecycle, factory)
        app = _build_app(lifecycle)
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/logout")
            assert resp.status == 200
            assert (await resp.json())["ok"] is True
        assert session.ended
        assert not lifecycle.is_ready
        assert lifecycle.credentials.load() == {"me": "x"}
        await lifecycle.stop()

    @pytest.mark.asyncio
    async def test_reset_session_wipes_credentials(self, lifecycle: LifecycleManager, factory: FakeFactory) -> None:
        lifecycle.credentials.save({"me": "x"})
        await bring_up(lifecycle, factory)
        app = _build_app(lifecycle)
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/reset-session")
            assert resp.status == 200
            assert "Session cleared" in (await resp.json())["message"]
        assert lifecycle.credentials.is_empty()
        assert lifecycle.reconnect_pending
        await lifecycle.stop()


class TestQrDuringReset:
    @pytest.mark.asyncio
    async def test_qr_does_not_start_while_wiping(self, lifecycle: LifecycleManager, factory: FakeFactory) -> None:
        release = asyncio.Event()
        real_wipe = lifecycle.credentials.wipe

        async def held_wipe() -> None:
            await release.wait()
            await real_wipe()

        lifecycle.credentials.wipe = held_wipe  # type: ignore[method-assign]
        session = await bring_up(lifecycle, factory)
        session.close_with(401, "Stream Errored (Logged Out)")
        await wait_until(lambda: lifecycle.state is SessionState.RESETTING)

        app = _build_app(lifecycle)
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/qr")
            assert resp.status == 202
            await settle()
            assert factory.calls == 1

        release.set()
        await wait_until(lambda: lifecycle.state is SessionState.DISCONNECTED)
        assert lifecycle.session is None
        await lifecycle.stop()
