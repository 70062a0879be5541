"""HTTP gateway server -- app factory and entry point."""

from __future__ import annotations

import logging
import sys

from aiohttp import web
from aiohttp.abc import AbstractAccessLogger

from .. import __version__
from ..config.settings import cfg
from ..messaging.announce import announce_boot
from ..messaging.router import MessageRouter
from ..messaging.sender import SendGateway
from ..messaging.webhook import WebhookForwarder
from ..qr import print_qr
from ..session.credentials import CredentialStore
from ..session.lifecycle import LifecycleManager
from ..session.transport import TransportFactory, load_transport_factory
from .routes.gateway_routes import GatewayRoutes

logger = logging.getLogger(__name__)

_QUIET_PATHS = frozenset({"/health", "/qr"})


# ---------------------------------------------------------------------------
# Access logger
# ---------------------------------------------------------------------------


class QuietAccessLogger(AbstractAccessLogger):
    """Demotes polling-endpoint log entries to DEBUG."""

    def log(self, request: web.BaseRequest, response: web.StreamResponse, time: float) -> None:
        level = logging.DEBUG if request.path in _QUIET_PATHS else logging.INFO
        self.logger.log(
            level,
            "%s %s %s %s %.3fs",
            request.remote,
            request.method,
            request.path,
            response.status,
            time,
        )


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


async def create_app(factory: TransportFactory | None = None) -> web.Application:
    return await AppFactory(factory).build()


class AppFactory:
    """Builds the aiohttp application with the session pipeline wired."""

    def __init__(self, factory: TransportFactory | None = None) -> None:
        self._factory = factory

    async def build(self) -> web.Application:
        cfg.ensure_dirs()
        self._init_core()

        app = web.Application()
        app["lifecycle"] = self.lifecycle
        app["gateway"] = self.gateway

        GatewayRoutes(self.lifecycle, self.gateway, cfg.send_token).register(app.router)
        app.on_startup.append(self._on_startup)
        app.on_cleanup.append(self._on_cleanup)
        return app

    def _resolve_factory(self) -> TransportFactory:
        if self._factory is not None:
            return self._factory
        if not cfg.transport_factory:
            raise RuntimeError("TRANSPORT_FACTORY is not configured (expected 'module:attribute')")
        return load_transport_factory(cfg.transport_factory)

    def _init_core(self) -> None:
        self.lifecycle = LifecycleManager(
            self._resolve_factory(),
            CredentialStore(cfg.session_dir),
            on_qr=print_qr,
        )
        self.gateway = SendGateway(
            self.lifecycle,
            jitter_ms=(cfg.send_jitter_min_ms, cfg.send_jitter_max_ms),
        )
        self.webhook = WebhookForwarder(cfg.webhook_url, cfg.webhook_token) if cfg.webhook_url else None
        self.router = MessageRouter(
            self.gateway,
            lambda: self.lifecycle.own_id,
            webhook=self.webhook,
            fallback_mention=cfg.fallback_text_mention,
        )
        self.lifecycle.on_message = self.router.handle
        self.lifecycle.on_ready = self._announce
        logger.info(
            "Gateway wired: session_dir=%s webhook=%s fallback_mention=%s",
            cfg.session_dir,
            "on" if self.webhook else "off",
            cfg.fallback_text_mention,
        )

    async def _announce(self) -> None:
        await announce_boot(self.gateway, cfg.boot_targets, cfg.server_name, cfg.data_dir)

    async def _on_startup(self, _app: web.Application) -> None:
        await self.lifecycle.start()

    async def _on_cleanup(self, _app: web.Application) -> None:
        await self.lifecycle.stop()
        if self.webhook is not None:
            await self.webhook.drain()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.INFO),
        format="%(asctime)s  %(name)s  %(levelname)s  %(message)s",
    )
    cfg.reload()
    if not cfg.transport_factory:
        logger.error("TRANSPORT_FACTORY is not set; nothing to bridge.")
        sys.exit(2)

    logger.info("Starting wabridge %s on port %d ...", __version__, cfg.port)
    web.run_app(create_app(), host="0.0.0.0", port=cfg.port, access_log_class=QuietAccessLogger)


if __name__ == "__main__":
    main()
