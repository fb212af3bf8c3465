"""
Correlation ID Middleware

Stamps every request with a correlation ID. The ID ends up in log records,
audit events and the X-Correlation-Id response header.
"""

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from ...utils.logger import set_correlation_id
from ...utils.idgen import generate_correlation_id

CORRELATION_HEADER = "X-Correlation-Id"
MAX_CORRELATION_ID_LENGTH = 128


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Accept the caller's X-Correlation-Id or generate one (COR-...).

    Over-long inbound IDs are replaced. The ID is also exposed as
    request.state.correlation_id.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER, "").strip()
        if not correlation_id or len(correlation_id) > MAX_CORRELATION_ID_LENGTH:
            correlation_id = generate_correlation_id()

        request.state.correlation_id = correlation_id
        set_correlation_id(correlation_id)
        response = await call_next(request)

        response.headers[CORRELATION_HEADER] = correlation_id
        return response
