"""
Caching and rate-limiting route wrapper.

``cached_endpoint`` wraps a FastAPI handler so that, in order:

1. the named rate limit is consumed; over budget raises
   ``RateLimitExceededError`` before the handler runs
2. a cached body for the route and its key parameters is returned as-is
3. otherwise the handler runs and a ``success: true`` body is cached

``cors_preflight`` builds a generic OPTIONS handler.
"""

import functools
import inspect
import json
from typing import Any, Callable, Dict, Iterable, Optional, Sequence, Union

from fastapi import Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from review_dashboard.core.cache import cache_key_from_params
from review_dashboard.core.config import Settings
from review_dashboard.core.exceptions import RateLimitExceededError
from review_dashboard.core.logging import get_logger
from review_dashboard.core.rate_limiting import RateLimitScope, extract_identifier

logger = get_logger(__name__)

JSON_MEDIA_TYPE = "application/json"

DEFAULT_ALLOWED_HEADERS = "Content-Type, Authorization"


def cors_headers(allowed_methods: Iterable[str] = ("GET", "OPTIONS")) -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": ", ".join(allowed_methods),
        "Access-Control-Allow-Headers": DEFAULT_ALLOWED_HEADERS,
    }


def cors_preflight(
    allowed_methods: Sequence[str] = ("GET", "OPTIONS"),
    max_age: int = 86400
) -> Callable:
    """
    Build an OPTIONS handler that answers preflight requests.

    The response does not depend on the route it is mounted next to.
    """

    async def preflight(request: Request) -> Response:
        headers = cors_headers(allowed_methods)
        requested = request.headers.get("access-control-request-headers")
        if requested:
            headers["Access-Control-Allow-Headers"] = requested
        headers["Access-Control-Max-Age"] = str(max_age)
        return Response(status_code=204, headers=headers)

    return preflight


def _render(result: Any) -> Response:
    if isinstance(result, Response):
        return result
    return JSONResponse(content=jsonable_encoder(result))


def _is_success(body: bytes) -> bool:
    try:
        payload = json.loads(body)
    except ValueError:
        return False
    return isinstance(payload, dict) and payload.get("success") is True


def cached_endpoint(
    route_name: str,
    *,
    rate_limit: Optional[str] = None,
    cache_ttl: Optional[Union[int, Callable[[Settings], int]]] = None,
    key_params: Sequence[str] = (),
    normalizers: Optional[Dict[str, Callable[[Any, Settings], Any]]] = None,
    cors: bool = False
) -> Callable:
    """
    Decorate a route handler with rate limiting and response caching.

    The handler must accept a ``request: Request`` parameter; everything
    else it needs is resolved by FastAPI as usual.

    Args:
        route_name: Cache namespace, first segment of every cache key
        rate_limit: Name of a limit registered on the RateLimiter
        cache_ttl: Seconds to keep successful responses, or a function of
            the app's Settings returning them; no caching when None
        key_params: Handler parameters that make up the cache key, in order
        normalizers: Per-parameter functions of (value, settings) applied
            before keying (e.g. clamping a limit so equivalent requests
            share an entry)
        cors: Add permissive CORS headers to every response
    """
    normalizers = normalizers or {}

    def decorator(func: Callable) -> Callable:
        if "request" not in inspect.signature(func).parameters:
            raise TypeError(f"{func.__name__} must accept a 'request: Request' parameter")

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            request: Request = kwargs["request"]
            registry = request.app.state.registry
            extra_headers = cors_headers() if cors else {}

            if rate_limit:
                configured = registry.rate_limiter.rate_limits.get(rate_limit)
                scope = configured.scope if configured else RateLimitScope.IP
                identifier = extract_identifier(request, scope)
                result = await registry.rate_limiter.check_rate_limit(rate_limit, identifier)
                if not result.allowed:
                    raise RateLimitExceededError(
                        limit=result.limit,
                        retry_after=result.retry_after,
                    )

            # resolved per request so the app's own settings apply
            ttl = cache_ttl(registry.settings) if callable(cache_ttl) else cache_ttl
            cache_fragment = None
            if ttl:
                cache_fragment = cache_key_from_params([
                    (
                        name,
                        normalizers[name](kwargs.get(name), registry.settings)
                        if name in normalizers else kwargs.get(name),
                    )
                    for name in key_params
                ])
                cached = await registry.cache.get(route_name, cache_fragment)
                if cached is not None:
                    logger.debug("Route cache hit", extra={
                        'route': route_name,
                        'cache_key': cache_fragment,
                    })
                    return Response(
                        content=cached.encode("utf-8") if isinstance(cached, str) else cached,
                        media_type=JSON_MEDIA_TYPE,
                        headers={"X-Cache": "HIT", **extra_headers},
                    )

            response = _render(await func(*args, **kwargs))

            if cache_fragment is not None:
                response.headers["X-Cache"] = "MISS"
                if 200 <= response.status_code < 300 and _is_success(response.body):
                    await registry.cache.set(
                        route_name,
                        cache_fragment,
                        value=response.body.decode("utf-8"),
                        expire=ttl,
                    )
            for name, value in extra_headers.items():
                response.headers[name] = value
            return response

        return wrapper

    return decorator
