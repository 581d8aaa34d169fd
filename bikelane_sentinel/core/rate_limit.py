import threading
import time
from typing import Callable, Dict, Tuple

from fastapi import status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from bikelane_sentinel.core.exceptions import error_body

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Fixed-window request ceiling per client IP.

    Only paths under `path_prefix` are counted; everything else passes through.
    """

    def __init__(
            self,
            app,
            window_seconds: float,
            max_requests: int,
            path_prefix: str = "/api",
            clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(app)
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.path_prefix = path_prefix
        self.clock = clock
        # client ip -> (window start, hits in window)
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._lock = threading.Lock()
        self._last_prune = clock()

    def _register_hit(self, client_ip: str) -> Tuple[bool, int]:
        now = self.clock()
        with self._lock:
            if now - self._last_prune >= self.window_seconds:
                self._prune(now)
            started, hits = self._windows.get(client_ip, (now, 0))
            if now - started >= self.window_seconds:
                started, hits = now, 0
            hits += 1
            self._windows[client_ip] = (started, hits)
            remaining = max(self.max_requests - hits, 0)
            return hits <= self.max_requests, remaining

    def _prune(self, now: float) -> None:
        """Drops clients whose window has ended. Caller holds the lock."""
        expired = [
            ip for ip, (started, _) in self._windows.items()
            if now - started >= self.window_seconds
        ]
        for ip in expired:
            del self._windows[ip]
        self._last_prune = now

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        allowed, remaining = self._register_hit(client_ip)
        if not allowed:
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content=error_body(RATE_LIMIT_MESSAGE),
                headers={"RateLimit-Limit": str(self.max_requests), "RateLimit-Remaining": "0"},
            )

        response = await call_next(request)
        response.headers["RateLimit-Limit"] = str(self.max_requests)
        response.headers["RateLimit-Remaining"] = str(remaining)
        return response
