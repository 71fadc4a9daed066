"""Pydantic schemas for request/response models.

All schemas are re-exported here for convenient imports.
"""

from agora.schemas.saved_searches import SavedSearchesOut, UpdateSavedSearchesRequest

__all__ = [
    "SavedSearchesOut",
    "UpdateSavedSearchesRequest",
]
