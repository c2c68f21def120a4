from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse
import structlog

logger = structlog.get_logger()

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


class CORSHeadersMiddleware(BaseHTTPMiddleware):
    """
    Set permissive CORS headers on every response.

    Unlike Starlette's CORSMiddleware the headers are added unconditionally,
    whether or not the request carries an Origin header. Unhandled errors are
    turned into a plain-text 500 here so they carry the headers too.
    """

    async def dispatch(self, request: Request, call_next):
        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                "Unhandled error",
                error=str(e),
                error_type=type(e).__name__,
                path=request.url.path,
            )
            response = PlainTextResponse(f"Internal Server Error: {e}", status_code=500)
        response.headers.update(CORS_HEADERS)
        return response
