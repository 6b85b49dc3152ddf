"""Opportunity database model."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text

from wabnet.database import Base

TABLE_NAME = "opportunities"


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Opportunity(Base):
    """
    Opportunity model representing a posted job or volunteer listing.

    Attributes:
        id: Primary key (UUID text, assigned on insert)
        position: Display title
        description: Free-text description
        image: Storage path of the image blob (not a URL)
        link: Optional external application URL
        created_at: Timestamp when record was created; listings sort on it
    """

    __tablename__ = TABLE_NAME

    id = Column(String(36), primary_key=True, default=_new_id)
    position = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    image = Column(String, nullable=True)
    link = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False, index=True)

    def __repr__(self) -> str:
        """String representation of Opportunity."""
        return f"<Opportunity(id='{self.id}', position='{self.position}', image='{self.image}')>"
