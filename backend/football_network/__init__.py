"""Expose the application factory at package level.

Provide convenient access to :func:`football_network.factory.create_app` so
callers (gunicorn, ``flask --app``) can ``from football_network import
create_app`` without traversing the package structure.
"""

from __future__ import annotations

from .factory import create_app

__all__ = ["create_app"]
