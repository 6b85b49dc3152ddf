"""Services package."""

from wabnet.services.change_feed import ChangeEvent, ChangeFeed
from wabnet.services.opportunity_repository import OpportunityRepository
from wabnet.services.opportunity_service import OpportunityService
from wabnet.services.storage import LocalObjectStorage, SupabaseObjectStorage

__all__ = [
    "ChangeEvent",
    "ChangeFeed",
    "LocalObjectStorage",
    "OpportunityRepository",
    "OpportunityService",
    "SupabaseObjectStorage",
]
