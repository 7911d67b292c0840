"""HTTP surface: request context, instrumentation middleware, handlers and app factory."""

from .app import ROUTES, RouteSpec, create_app
from .context import RequestContext
from .handlers import VesselHandlers
from .middleware import instrument

__all__ = [
    "ROUTES",
    "RouteSpec",
    "RequestContext",
    "VesselHandlers",
    "create_app",
    "instrument",
]
