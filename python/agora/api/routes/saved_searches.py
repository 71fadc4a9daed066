"""Saved search routes.

Routes are transport-only and call exactly one service function.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from agora.api.deps import get_db, get_settings
from agora.auth.middleware import Viewer, get_viewer
from agora.config import Settings
from agora.responses import success_response
from agora.schemas.saved_searches import UpdateSavedSearchesRequest
from agora.services import saved_searches as saved_searches_service

router = APIRouter()


@router.get("/me/saved-searches")
def get_saved_searches(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict:
    """List the viewer's saved searches in stored order."""
    result = saved_searches_service.get_saved_searches_for_user(db, viewer.user_id, settings)
    return success_response(result.model_dump(mode="json"))


@router.put("/me/saved-searches")
def put_saved_searches(
    body: UpdateSavedSearchesRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict:
    """Replace the viewer's saved searches.

    Blank terms are dropped. Requires the minimum trust level.
    """
    result = saved_searches_service.replace_saved_searches(
        db, viewer.user_id, body.searches, settings
    )
    return success_response(result.model_dump(mode="json"))
