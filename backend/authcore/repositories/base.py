"""Generic SQLAlchemy 2.x repository shared by the auth aggregates.

Repositories only read and stage rows. They never commit or roll back:
transaction boundaries belong to the Unit of Work opened by a service.
Writes go through explicit per-repository whitelists so a caller can never
mass-assign columns such as ``password_hash`` or ``is_active``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Generic, TypeVar, cast

from sqlalchemy import Select, func, select
from sqlalchemy.orm import InstrumentedAttribute, Session

from authcore.core.extensions import db

E = TypeVar("E")


class BaseRepository(Generic[E]):
    """
    Persistence helpers for one mapped class.

    Subclasses set :attr:`model` and may narrow :meth:`_filterable_fields`
    and :meth:`_updatable_fields`.
    """

    model: type[E]

    def __init__(self, session: Session | None = None) -> None:
        """
        :param session: Session of the enclosing Unit of Work; the
            Flask-scoped session when omitted.
        """
        self._session = session

    @property
    def session(self) -> Session:
        return self._session if self._session is not None else cast(Session, db.session)

    # ------------------------------ Whitelists -------------------------------

    def _filterable_fields(self) -> Mapping[str, InstrumentedAttribute[Any]] | None:
        """Columns usable in :meth:`find_one` / :meth:`exists`; ``None`` allows any."""
        return None

    def _updatable_fields(self) -> set[str]:
        """Columns :meth:`assign_updates` may write. Empty means read-only."""
        return set()

    def _where(self, stmt: Select[Any], filters: Mapping[str, Any]) -> Select[Any]:
        allowed = self._filterable_fields()
        for key, value in filters.items():
            column = getattr(self.model, key) if allowed is None else allowed.get(key)
            # Unknown keys are dropped rather than turned into raw SQL
            if column is not None:
                stmt = stmt.where(column == value)
        return stmt

    # -------------------------------- Reads ----------------------------------

    def get(self, entity_id: Any) -> E | None:
        """Return the row with primary key ``entity_id`` or ``None``."""
        return cast(E | None, self.session.get(self.model, entity_id))

    def find_one(self, **filters: Any) -> E | None:
        """First row matching every equality filter."""
        stmt = self._where(select(self.model), filters)
        return cast(E | None, self.session.execute(stmt).scalars().first())

    def exists(self, **filters: Any) -> bool:
        stmt = self._where(select(func.count()).select_from(self.model), filters)
        return bool(self.session.execute(stmt).scalar())

    # -------------------------------- Writes ---------------------------------

    def add(self, instance: E) -> E:
        """Stage ``instance`` and flush so defaults such as ``id`` are populated."""
        self.session.add(instance)
        self.flush()
        return instance

    def delete(self, instance: E) -> None:
        """Mark ``instance`` for deletion and flush."""
        self.session.delete(instance)
        self.flush()

    def flush(self) -> None:
        self.session.flush()

    def assign_updates(
        self,
        instance: E,
        fields: Mapping[str, Any],
        *,
        strict: bool = True,
        flush: bool = True,
    ) -> E:
        """
        Copy whitelisted ``fields`` onto ``instance``.

        Assignment goes through ``setattr`` so ``@validates`` hooks run.

        :param strict: Raise on keys outside the whitelist instead of
            silently skipping them.
        :param flush: Flush once all keys are assigned.
        :raises ValueError: On non-updatable keys when ``strict``.
        """
        allowed = self._updatable_fields()
        rejected = sorted(k for k in fields if k not in allowed)
        if rejected and strict:
            raise ValueError(f"Non-updatable fields for {self.model.__name__}: {rejected}")
        for key, value in fields.items():
            if key in allowed:
                setattr(instance, key, value)
        if flush:
            self.flush()
        return instance
