"""Listing card projection of an opportunity."""

from datetime import datetime

from pydantic import BaseModel

from wabnet.config import ListingConfig
from wabnet.schemas.opportunity import Opportunity
from wabnet.utils.image_urls import resolve_image_url


class ListingItem(BaseModel):
    """Read-only display projection of an Opportunity (recomputed on every fetch)."""

    id: str
    title: str
    summary: str
    image_url: str
    href: str
    date: datetime
    category: str
    has_external_link: bool
    cta_text: str

    @classmethod
    def from_opportunity(
        cls,
        opportunity: Opportunity,
        *,
        config: ListingConfig,
        storage_base_url: str,
        bucket: str,
    ) -> "ListingItem":
        """
        Project an opportunity into display fields.

        Args:
            opportunity: Source record
            config: Listing configuration (fallback image, default anchor, category)
            storage_base_url: Public base URL of object storage
            bucket: Storage bucket holding opportunity images

        Returns:
            ListingItem for the card grid
        """
        href = opportunity.link or config.default_link
        has_external_link = href != config.default_link
        return cls(
            id=opportunity.id,
            title=opportunity.position,
            summary=opportunity.description,
            image_url=resolve_image_url(
                opportunity.image,
                base_url=storage_base_url,
                bucket=bucket,
                fallback=config.fallback_image,
            ),
            href=href,
            date=opportunity.created_at,
            category=config.category,
            has_external_link=has_external_link,
            cta_text="Apply Now" if has_external_link else "Learn More",
        )
