"""Opportunity Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class Opportunity(BaseModel):
    """Complete opportunity schema with database fields."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    position: str
    description: str
    image: str | None = None
    link: str | None = None
    created_at: datetime


class OpportunityResponse(BaseModel):
    """Envelope returned by the admin save endpoint."""

    success: bool
    opportunity: Opportunity | None = None
    error: str | None = None


class DeleteRequest(BaseModel):
    """Schema for the admin delete request body."""

    id: str | None = None


class DeleteResponse(BaseModel):
    """Envelope returned by the admin delete endpoint."""

    success: bool
    error: str | None = None
