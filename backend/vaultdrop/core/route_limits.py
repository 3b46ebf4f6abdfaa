# vaultdrop/core/route_limits.py

from fastapi import FastAPI, HTTPException, Request
from limits import parse
from slowapi import Limiter
from slowapi.util import get_remote_address

# Coarse per-address ceiling in front of every route, including /ping.
# The per-visitor token bucket in rate_limiter.py does the real
# throttling of create and consume.
DEFAULT_ROUTE_LIMIT = "10/second"


def install_route_limits(app: FastAPI, limit: str = DEFAULT_ROUTE_LIMIT, enabled: bool = True) -> Limiter:
    """
    Attach a slowapi limiter and the parsed ceiling to the app.
    The check itself runs in route_ceiling, an app-wide dependency.
    """
    limiter = Limiter(key_func=get_remote_address, enabled=enabled)
    app.state.limiter = limiter
    app.state.route_limit = parse(limit)
    return limiter


def route_ceiling(request: Request) -> None:
    # Runs after routing, so the matched route template is known
    limiter: Limiter = request.app.state.limiter
    if not limiter.enabled:
        return

    ceiling = request.app.state.route_limit
    route = request.scope.get("route")
    path = getattr(route, "path", request.url.path)

    if not limiter.limiter.hit(ceiling, get_remote_address(request), path):
        raise HTTPException(status_code=429, detail=f"Rate limit exceeded: {ceiling}")
