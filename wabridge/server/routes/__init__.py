"""Route handlers -- each class exposes ``register(router)``."""

from .gateway_routes import GatewayRoutes

__all__ = ["GatewayRoutes"]
