"""Database models package."""

from wabnet.models.opportunity import Opportunity

__all__ = ["Opportunity"]
