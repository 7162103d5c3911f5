"""
Trace id middleware for FastAPI.
Gives every request a correlation id that shows up in logs, responses and errors.
"""
import logging
import re
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


TRACE_ID_HEADER = "X-Trace-Id"

# Accepted client-supplied ids; anything else is replaced
TRACE_ID_PATTERN = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


class TraceIdMiddleware(BaseHTTPMiddleware):
    """
    Reads X-Trace-Id from the request (or generates a uuid4), stores it on
    request.state.trace_id and echoes it in the response header.
    """

    async def dispatch(self, request: Request, call_next: ASGIApp):
        """
        Attach a trace id and pass the request on.

        Args:
            request: FastAPI request object
            call_next: Next middleware or route handler

        Returns:
            Response object with the X-Trace-Id header set
        """
        trace_id = request.headers.get(TRACE_ID_HEADER, "")
        if not TRACE_ID_PATTERN.match(trace_id):
            if trace_id:
                logger.info(f"Replacing malformed trace id on {request.url.path}")
            trace_id = str(uuid.uuid4())

        request.state.trace_id = trace_id
        response = await call_next(request)
        response.headers[TRACE_ID_HEADER] = trace_id
        return response
