"""
UserAccountService
==================

Read and lifecycle operations on user accounts needed by the auth surface:
profile lookup and deactivation. Credential handling lives in the
authentication service.
"""

from __future__ import annotations

import logging

from football_network.infra.sqlalchemy.user_lookup import to_record
from football_network.repositories.user import UserRepository
from football_network.services._shared.base import BaseService
from football_network.services._shared.errors import NotFoundError
from football_network.services._shared.ports import UserRecord
from football_network.services.audit import AuditEvent, AuditLogger

logger = logging.getLogger(__name__)


class UserAccountService(BaseService):
    """Application service for account state (no token handling)."""

    def __init__(self, *, audit: AuditLogger | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.audit = audit or AuditLogger()

    def get(self, user_id: int) -> UserRecord:
        """
        Return a public snapshot of the user.

        :raises NotFoundError: If the user does not exist.
        """
        with self.ro_uow() as uow:
            repo: UserRepository = uow.users
            user = repo.get(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            return to_record(user)

    def deactivate(self, user_id: int) -> UserRecord:
        """
        Mark the account inactive (idempotent).

        Session revocation is the caller's concern; inactive users are
        refused at login and at refresh.

        :raises NotFoundError: If the user does not exist.
        """
        with self.rw_uow() as uow:
            repo: UserRepository = uow.users
            user = repo.get(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            user.deactivate()
            repo.session.flush()
            logger.info("User deactivated", extra={"user_id": user_id})
            self.audit.record(AuditEvent.USER_DEACTIVATED, user_id=user_id, ctx=self.ctx)
            return to_record(user)
