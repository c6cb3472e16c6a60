"""Translate built-in and service exceptions into the API error taxonomy.

This stage never writes a response; it re-raises the translated
:class:`~football_network.core.errors.APIError` so that the
exception-handling stage stays the single body writer.
"""

from __future__ import annotations

import logging

from flask import Request, Response

from football_network.core.errors import translate_exception

from .base import Handler

logger = logging.getLogger(__name__)


class ExceptionTranslationMiddleware:
    def __call__(self, request: Request, call_next: Handler) -> Response:
        try:
            return call_next(request)
        except Exception as exc:
            translated = translate_exception(exc)
            if translated is exc:
                raise
            logger.debug(
                "Translated %s into %s for %s %s",
                type(exc).__name__,
                type(translated).__name__,
                request.method,
                request.path,
            )
            raise translated from exc
