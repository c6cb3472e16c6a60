"""Terminal exception handler: every escaping exception becomes a problem body."""

from __future__ import annotations

from flask import Request, Response
from werkzeug.exceptions import HTTPException

from football_network.core.errors import problem_response

from .base import Handler


class ExceptionHandlingMiddleware:
    """
    Catch anything raised downstream and render it via
    :func:`football_network.core.errors.problem_response`.

    Nothing propagates past this stage. Redirect-style HTTP exceptions
    (status < 400, e.g. trailing-slash redirects) are returned as-is.

    :param expose_stack_trace: Include ``stackTrace`` and raw messages for
        unexpected errors (development only).
    """

    def __init__(self, *, expose_stack_trace: bool = False) -> None:
        self.expose_stack_trace = expose_stack_trace

    def __call__(self, request: Request, call_next: Handler) -> Response:
        try:
            return call_next(request)
        except HTTPException as exc:
            if exc.code is not None and exc.code < 400:
                return exc.get_response()
            return problem_response(exc, expose_stack_trace=self.expose_stack_trace)
        except Exception as exc:
            return problem_response(exc, expose_stack_trace=self.expose_stack_trace)
