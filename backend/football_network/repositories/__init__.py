"""Repository package exposing persistence-layer access for domain models."""

from __future__ import annotations

from football_network.repositories.base import BaseRepository
from football_network.repositories.user import UserRepository

__all__ = ["BaseRepository", "UserRepository"]
