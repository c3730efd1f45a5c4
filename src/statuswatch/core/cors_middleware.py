import logging

from fastapi import Request
from fastapi.responses import ORJSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

from statuswatch.config.config import Config

logger = logging.getLogger(__name__)


class CorsMiddleware(BaseHTTPMiddleware):
    """
    Attaches the permissive cross-origin headers to every response, answers
    preflight requests without touching the routes, and turns uncaught faults
    into a generic 500.
    """

    def __init__(
        self,
        app: ASGIApp,
        allow_origin: str = Config.ALLOW_ORIGIN,
        allow_methods: str = Config.ALLOW_METHODS,
        allow_headers: str = Config.ALLOW_HEADERS,
        allow_credentials: str = Config.ALLOW_CREDENTIALS,
    ):
        super().__init__(app)
        self.cors_headers = {
            "Access-Control-Allow-Credentials": allow_credentials,
            "Access-Control-Allow-Origin": allow_origin,
            "Access-Control-Allow-Methods": allow_methods,
            "Access-Control-Allow-Headers": allow_headers,
        }

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS":
            response = Response(status_code=200)
        else:
            try:
                response = await call_next(request)
            except Exception:
                logger.exception(f"Unhandled error serving {request.method} {request.url.path}")
                response = ORJSONResponse({"error": "Internal Server Error"}, status_code=500)
        response.headers.update(self.cors_headers)
        return response
