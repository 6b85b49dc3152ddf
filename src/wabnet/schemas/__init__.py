"""Pydantic schemas package."""

from wabnet.schemas.listing import ListingItem
from wabnet.schemas.opportunity import (
    DeleteRequest,
    DeleteResponse,
    Opportunity,
    OpportunityResponse,
)

__all__ = [
    "DeleteRequest",
    "DeleteResponse",
    "ListingItem",
    "Opportunity",
    "OpportunityResponse",
]
