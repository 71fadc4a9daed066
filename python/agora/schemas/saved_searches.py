"""Saved search Pydantic schemas.

Contains request and response models for the saved search endpoints.
Count and length limits are enforced by the service layer because they
come from runtime settings.
"""

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Request Schemas
# =============================================================================


class UpdateSavedSearchesRequest(BaseModel):
    """Request body for replacing a user's saved searches."""

    searches: list[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


# =============================================================================
# Response Schemas
# =============================================================================


class SavedSearchesOut(BaseModel):
    """A user's saved searches, in stored order, with the limits that apply."""

    searches: list[str]
    min_trust_level: int
    max_terms: int
