"""Centralized JSON (RFC 7807) error handling for the API.

Two entry points share one taxonomy:

* :func:`translate_exception` maps built-in and service-level exceptions
  onto :class:`APIError` subclasses (no response is written);
* :func:`problem_response` resolves any exception to its status, logs it at
  a severity derived from that status and renders the problem body.

The request pipeline calls both; :func:`init_app` wires the same builder
into Flask error handlers for failures raised outside the pipeline (for
example inside ``before_request`` hooks).
"""

from __future__ import annotations

import logging
import traceback
from datetime import UTC, datetime
from http import HTTPStatus
from typing import Any

from flask import Flask, Response, current_app, has_request_context, jsonify, request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt import PyJWTError
from marshmallow import ValidationError as MarshmallowValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException

from football_network.core.logger import ensure_request_id
from football_network.services._shared.errors import (
    AuthorizationError,
    ConflictError,
    InvalidArgumentError,
    InvalidCredentialsError,
    NotFoundError,
    SecurityTokenError,
    ServiceError,
)

log = logging.getLogger(__name__)

PROBLEM_MIMETYPE = "application/problem+json"


def _http_status_to_code(status_code: int) -> str:
    """Map common HTTP status codes to canonical, stable error codes."""
    mapping = {
        400: "bad_request",
        401: "unauthorized",
        403: "forbidden",
        404: "not_found",
        405: "method_not_allowed",
        408: "request_timeout",
        409: "conflict",
        413: "payload_too_large",
        415: "unsupported_media_type",
        422: "unprocessable_entity",
        429: "too_many_requests",
        500: "internal_server_error",
        503: "service_unavailable",
    }
    return mapping.get(status_code, "error")


def _as_problem(
    *,
    status: int,
    code: str,
    message: str,
    title: str | None = None,
    errors: dict[str, Any] | None = None,
    extensions: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Build an RFC 7807 Problem Details dict.

    :param status: HTTP status code.
    :param code: Stable machine-consumable error code.
    :param message: Human-readable error summary (safe for clients).
    :param title: Short summary; defaults to the HTTP reason phrase.
    :param errors: Optional field-level validation errors.
    :param extensions: Extra top-level members (e.g. ``retryAfter``).
    :returns: Problem+JSON dictionary.
    :rtype: dict
    """
    problem: dict[str, Any] = {
        "type": "about:blank",
        "title": title or HTTPStatus(status).phrase,
        "status": status,
        "detail": message,
        "instance": ensure_request_id(),
        "code": code,
        "timestamp": datetime.now(UTC).isoformat(),
    }
    if has_request_context():
        problem["path"] = request.path
    if errors:
        problem["errors"] = errors
    if extensions:
        problem.update(extensions)
    return problem


def _problem_response(problem: dict[str, Any], status: int) -> Response:
    """
    Return a Flask response with ``application/problem+json`` media type.

    :param problem: Problem details payload.
    :param status: HTTP status code to set.
    :returns: Flask JSON Response with proper MIME type.
    :rtype: flask.Response
    """
    resp = jsonify(problem)
    resp.status_code = status
    resp.mimetype = PROBLEM_MIMETYPE
    return resp


class APIError(Exception):
    """
    Represent a JSON-serializable API error.

    Parameters
    ----------
    message : str
        Human-readable description presented to clients.
    status_code : int, optional
        HTTP status code to return. Defaults to ``400``.
    code : str, optional
        Machine-readable identifier, typically snake_case. Defaults to
        ``"bad_request"``.
    title : str | None, optional
        Problem title; the HTTP reason phrase when omitted.
    errors : dict[str, Any] | None, optional
        Field-level validation messages included as ``errors``.
    headers : dict[str, str] | None, optional
        Extra response headers (e.g. ``Retry-After``).
    """

    title: str | None = None

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        code: str = "bad_request",
        *,
        title: str | None = None,
        errors: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code)
        self.code = code
        if title is not None:
            self.title = title
        self.errors = errors or {}
        self.headers = headers or {}

    def extensions(self) -> dict[str, Any]:
        """Return extra top-level problem members (none by default)."""
        return {}

    def to_problem(self) -> dict[str, Any]:
        """
        Serialize error metadata into an RFC 7807 problem.

        :returns: Problem details dictionary.
        :rtype: dict
        """
        return _as_problem(
            status=self.status_code,
            code=self.code,
            message=self.message,
            title=self.title,
            errors=self.errors or None,
            extensions=self.extensions() or None,
        )


# Domain conveniences
class BadRequest(APIError):
    """400 for malformed arguments."""

    title = "Invalid Request"

    def __init__(self, message: str = "Invalid request parameters.") -> None:
        super().__init__(message, status_code=HTTPStatus.BAD_REQUEST, code="bad_request")


class ValidationFailed(APIError):
    """400 carrying field-level validation errors."""

    title = "Validation Failed"

    def __init__(
        self,
        errors: dict[str, Any] | None = None,
        message: str = "One or more validation errors occurred.",
    ) -> None:
        super().__init__(
            message, status_code=HTTPStatus.BAD_REQUEST, code="validation_error", errors=errors
        )


class NotFound(APIError):
    """404 when resources are missing."""

    title = "Resource Not Found"

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message, status_code=HTTPStatus.NOT_FOUND, code="not_found")


class Conflict(APIError):
    """409 for uniqueness/constraint collisions."""

    def __init__(self, message: str = "Conflict") -> None:
        super().__init__(message, status_code=HTTPStatus.CONFLICT, code="conflict")


class Unauthorized(APIError):
    """401 when authentication fails."""

    def __init__(self, message: str = "Authentication required to access this resource") -> None:
        super().__init__(message, status_code=HTTPStatus.UNAUTHORIZED, code="unauthorized")


class Forbidden(APIError):
    """403 when authorization denies access."""

    def __init__(self, message: str = "You do not have permission to access this resource") -> None:
        super().__init__(message, status_code=HTTPStatus.FORBIDDEN, code="forbidden")


class RequestTimeout(APIError):
    """408 when an operation timed out."""

    def __init__(self, message: str = "The request timed out. Please try again.") -> None:
        super().__init__(message, status_code=HTTPStatus.REQUEST_TIMEOUT, code="request_timeout")


class TooManyRequests(APIError):
    """429 raised by the authentication rate limiter."""

    title = "Too many authentication attempts"

    def __init__(
        self,
        retry_after: int,
        message: str = "Rate limit exceeded. Please try again later.",
    ) -> None:
        super().__init__(
            message,
            status_code=HTTPStatus.TOO_MANY_REQUESTS,
            code="too_many_requests",
            headers={"Retry-After": str(retry_after)},
        )
        self.retry_after = retry_after

    def extensions(self) -> dict[str, Any]:
        return {"retryAfter": self.retry_after}


# --------------------------------------------------------------------------- #
# Translation
# --------------------------------------------------------------------------- #


def translate_exception(exc: BaseException) -> BaseException:
    """
    Map built-in and service-level exceptions onto :class:`APIError`.

    Exceptions that already belong to the API taxonomy, werkzeug HTTP errors
    and anything unknown are returned untouched.

    :param exc: Exception raised downstream.
    :returns: Translated exception (or ``exc`` itself).
    """
    if isinstance(exc, APIError | HTTPException):
        return exc

    # --- Service layer -------------------------------------------------------
    if isinstance(exc, SecurityTokenError):
        # Reason stays server-side; clients only learn the token is unusable.
        return Unauthorized("Invalid refresh token")
    if isinstance(exc, InvalidCredentialsError):
        return Unauthorized(str(exc))
    if isinstance(exc, AuthorizationError):
        return Forbidden(str(exc) or "You do not have permission to access this resource")
    if isinstance(exc, NotFoundError):
        return NotFound(str(exc))
    if isinstance(exc, ConflictError):
        return Conflict(str(exc))
    if isinstance(exc, InvalidArgumentError):
        return BadRequest(str(exc))
    if isinstance(exc, ServiceError):
        return BadRequest(str(exc) or "The requested operation is not valid.")

    # --- Libraries -----------------------------------------------------------
    if isinstance(exc, MarshmallowValidationError):
        messages = exc.messages if isinstance(exc.messages, dict) else {"_schema": exc.messages}
        return ValidationFailed(errors=messages)
    if isinstance(exc, JWTExtendedException | PyJWTError):
        return Unauthorized()
    if isinstance(exc, IntegrityError):
        return Conflict("Resource conflict")

    # --- Built-ins -----------------------------------------------------------
    if isinstance(exc, TimeoutError):
        return RequestTimeout()
    if isinstance(exc, PermissionError):
        return Forbidden("Access denied. Please check your credentials.")
    if isinstance(exc, KeyError):
        return NotFound("The requested resource was not found.")
    if isinstance(exc, ValueError):
        return BadRequest()
    return exc


def resolve_exception(exc: BaseException) -> APIError:
    """
    Resolve any exception to an :class:`APIError` with a definite status.

    :param exc: Exception raised downstream.
    :returns: API error describing the wire-level response.
    """
    translated = translate_exception(exc)
    if isinstance(translated, APIError):
        return translated
    if isinstance(translated, HTTPException):
        status = int(translated.code or HTTPStatus.INTERNAL_SERVER_ERROR)
        error_code = _http_status_to_code(status)
        message = (translated.description or error_code.replace("_", " ").capitalize()).strip()
        if status == HTTPStatus.NOT_FOUND and has_request_context():
            message = f"Route '{request.path}' not found"
        err = APIError(message, status_code=status, code=error_code)
        if status == HTTPStatus.NOT_FOUND:
            err.title = NotFound.title
        if status == HTTPStatus.METHOD_NOT_ALLOWED:
            allowed = getattr(translated, "valid_methods", None)
            if allowed:
                err.headers["Allow"] = ", ".join(allowed)
        return err
    if isinstance(translated, OperationalError):
        return APIError(
            "Service temporarily unavailable",
            status_code=HTTPStatus.SERVICE_UNAVAILABLE,
            code="service_unavailable",
        )
    return APIError(
        "An unexpected error occurred",
        status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
        code="internal_server_error",
    )


def status_for(exc: BaseException) -> int:
    """Return the HTTP status an exception would be rendered with."""
    return resolve_exception(exc).status_code


def _log_problem(err: APIError, exc: BaseException, problem: dict[str, Any]) -> None:
    """Log at a severity derived from the status (404 info, 4xx warning, 5xx error)."""
    extra = {"status_code": err.status_code, "path": problem.get("path")}
    if err.status_code >= 500:
        log.error(
            "Unhandled exception: code=%s status=%s request_id=%s",
            err.code,
            err.status_code,
            problem["instance"],
            exc_info=(type(exc), exc, exc.__traceback__),
            extra=extra,
        )
    elif err.status_code == HTTPStatus.NOT_FOUND:
        log.info(
            "%s: code=%s status=%s detail=%s request_id=%s",
            type(exc).__name__,
            err.code,
            err.status_code,
            err.message,
            problem["instance"],
            extra=extra,
        )
    else:
        log.warning(
            "%s: code=%s status=%s detail=%s request_id=%s",
            type(exc).__name__,
            err.code,
            err.status_code,
            err.message,
            problem["instance"],
            extra=extra,
        )


def problem_response(exc: BaseException, *, expose_stack_trace: bool | None = None) -> Response:
    """
    Render any exception as an RFC 7807 response and log it.

    :param exc: Exception to render.
    :param expose_stack_trace: Attach ``stackTrace`` (and the raw message for
        unexpected errors). Defaults to the ``EXPOSE_STACK_TRACES`` setting.
    :returns: ``application/problem+json`` response.
    :rtype: flask.Response
    """
    if expose_stack_trace is None:
        expose_stack_trace = bool(current_app.config.get("EXPOSE_STACK_TRACES", False))

    err = resolve_exception(exc)
    problem = err.to_problem()
    if expose_stack_trace:
        if err.status_code >= 500:
            problem["detail"] = str(exc) or type(exc).__name__
        problem["stackTrace"] = "".join(traceback.format_exception(exc))

    _log_problem(err, exc, problem)
    resp = _problem_response(problem, err.status_code)
    for name, value in err.headers.items():
        resp.headers[name] = value
    return resp


def init_app(app: Flask) -> None:
    """
    Attach JSON error handlers to the Flask app.

    Notes
    -----
    - Covers errors raised before the request pipeline runs (``before_request``
      hooks) and anything Flask itself turns into an HTTP error.
    - Guarantees RFC 7807 responses with a correlation id in ``instance``.
    """

    @app.errorhandler(APIError)
    def handle_api_error(err: APIError):
        return problem_response(err)

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        return problem_response(err)

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        return problem_response(err)


__all__ = [
    "APIError",
    "BadRequest",
    "Conflict",
    "Forbidden",
    "NotFound",
    "RequestTimeout",
    "TooManyRequests",
    "Unauthorized",
    "ValidationFailed",
    "init_app",
    "problem_response",
    "resolve_exception",
    "status_for",
    "translate_exception",
]
