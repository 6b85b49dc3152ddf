"""Row-level access to the opportunities table."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wabnet.errors import PersistenceError
from wabnet.models.opportunity import TABLE_NAME, Opportunity
from wabnet.services.change_feed import ChangeEvent, ChangeFeed

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({"position", "description", "image", "link"})


class OpportunityRepository:
    """
    Query and mutate opportunity rows.

    Every committed mutation is announced on the change feed (when one is
    given) so that listings can refetch.  Database failures roll the session
    back and surface as PersistenceError.
    """

    def __init__(self, db: Session, feed: ChangeFeed | None = None) -> None:
        """
        Initialize the repository.

        Args:
            db: SQLAlchemy database session
            feed: Change feed to notify after each commit
        """
        self.db = db
        self.feed = feed

    def _notify(self, kind: str, record_id: str) -> None:
        if self.feed is not None:
            self.feed.publish(ChangeEvent(table=TABLE_NAME, event=kind, record_id=record_id))  # type: ignore[arg-type]

    def list(self) -> list[Opportunity]:
        """
        Get all opportunities, newest first.

        Raises:
            PersistenceError: If the query fails
        """
        try:
            return self.db.query(Opportunity).order_by(Opportunity.created_at.desc()).all()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to fetch opportunities: {exc}") from exc

    def get(self, opportunity_id: str) -> Opportunity | None:
        """
        Get one opportunity by id.

        Raises:
            PersistenceError: If the query fails
        """
        try:
            return self.db.query(Opportunity).filter(Opportunity.id == opportunity_id).first()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to fetch opportunity {opportunity_id}: {exc}") from exc

    def insert(
        self,
        *,
        position: str,
        description: str,
        image: str | None,
        link: str | None,
    ) -> Opportunity:
        """
        Insert a new opportunity.

        Returns:
            The created row, with id and created_at populated

        Raises:
            PersistenceError: If the insert fails
        """
        opportunity = Opportunity(position=position, description=description, image=image, link=link)
        try:
            self.db.add(opportunity)
            self.db.commit()
            self.db.refresh(opportunity)
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise PersistenceError(f"Failed to insert opportunity: {exc}") from exc

        self._notify("INSERT", opportunity.id)
        return opportunity

    def update(self, opportunity_id: str, fields: dict[str, Any]) -> Opportunity | None:
        """
        Update an opportunity's fields.

        Args:
            opportunity_id: Row to update
            fields: Column values to set (only position, description, image, link)

        Returns:
            The updated row, or None if it does not exist

        Raises:
            PersistenceError: If the update fails
            ValueError: If ``fields`` names a column that cannot be updated
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        opportunity = self.get(opportunity_id)
        if opportunity is None:
            return None

        try:
            for name, value in fields.items():
                setattr(opportunity, name, value)
            self.db.commit()
            self.db.refresh(opportunity)
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise PersistenceError(f"Failed to update opportunity {opportunity_id}: {exc}") from exc

        self._notify("UPDATE", opportunity.id)
        return opportunity

    def delete(self, opportunity_id: str) -> bool:
        """
        Delete an opportunity.

        Returns:
            True if a row was deleted, False if none matched

        Raises:
            PersistenceError: If the delete fails
        """
        try:
            deleted = (
                self.db.query(Opportunity)
                .filter(Opportunity.id == opportunity_id)
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise PersistenceError(f"Failed to delete opportunity {opportunity_id}: {exc}") from exc

        if deleted:
            self._notify("DELETE", opportunity_id)
        return bool(deleted)
