"""Generic repository base for SQLAlchemy 2.x.

Repositories are persistence-only:

* they never implement use cases or domain policies;
* they never call commit/rollback, services own the unit of work.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Generic, TypeVar, cast

from sqlalchemy import select
from sqlalchemy.orm import Session

from football_network.core.extensions import db

E = TypeVar("E")  # SQLAlchemy mapped entity type


class BaseRepository(Generic[E]):
    """Generic, persistence-only repository for a single aggregate.

    Subclasses MUST define ``model``: the SQLAlchemy mapped class.
    """

    #: SQLAlchemy mapped model (must be set by subclasses)
    model: type[E]

    def __init__(self, session: Session | None = None) -> None:
        """Initialise the repository with an optional SQLAlchemy session.

        When no explicit session is provided the repository falls back to the
        Flask-scoped session exposed by ``football_network.core.extensions``.

        :param session: Session shared across the Unit of Work scope.
        :type session: :class:`sqlalchemy.orm.Session` | None
        """
        self._session: Session | None = session

    @property
    def session(self) -> Session:
        """Return the injected session, else the Flask-scoped one."""
        if self._session is not None:
            return self._session
        return cast(Session, db.session)

    # ------------------------------ Basic CRUD -------------------------------

    def get(self, id_: Any) -> E | None:
        """Fetch an entity by primary key.

        :param id_: Primary key value.
        :returns: Entity or ``None``.
        """
        return self.session.get(self.model, id_)

    def add(self, instance: E) -> E:
        """Stage ``instance`` for insertion and flush to obtain its id."""
        self.session.add(instance)
        self.session.flush()
        return instance

    def list(self, *, limit: int = 100, offset: int = 0) -> Sequence[E]:
        """Return a page of entities ordered by primary key."""
        pk = getattr(self.model, "id")
        stmt = select(self.model).order_by(pk.asc()).limit(max(limit, 1)).offset(max(offset, 0))
        return list(self.session.execute(stmt).scalars().all())
