"""Saved search service layer.

Owns the per-user saved search terms and the per-(user, term) cursor that
records the newest post already reported.

Service functions correspond 1:1 with route handlers where a route exists.
Routes are transport-only and call exactly one service function.

Cursor rules:
- A cursor is a (created_at, post_id) pair compared lexicographically
- Cursors only move forward; advance_cursor ignores older positions
- Cursors outlive their term: removing and re-adding a term keeps its
  position. Replace prunes only cursors of removed terms that fall outside
  the recency window
"""

from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.orm import Session

from agora.config import Settings, get_settings
from agora.db.models import SavedSearch, SavedSearchCursor, User
from agora.errors import ApiErrorCode, ForbiddenError, InvalidRequestError, NotFoundError
from agora.logging import get_logger
from agora.schemas.saved_searches import SavedSearchesOut
from agora.services.search import SearchCursor

logger = get_logger(__name__)


# =============================================================================
# User Store
# =============================================================================


def get_user(db: Session, user_id: UUID) -> User | None:
    """Load a user by id, or None if absent."""
    return db.get(User, user_id)


def get_user_or_404(db: Session, user_id: UUID) -> User:
    """Load a user by id.

    Raises:
        NotFoundError(E_USER_NOT_FOUND): If the user doesn't exist.
    """
    user = get_user(db, user_id)
    if user is None:
        raise NotFoundError(ApiErrorCode.E_USER_NOT_FOUND, "User not found")
    return user


def list_saved_search_terms(db: Session, user_id: UUID) -> list[str]:
    """Return a user's saved terms in stored order (duplicates preserved)."""
    rows = db.scalars(
        select(SavedSearch.term)
        .where(SavedSearch.user_id == user_id)
        .order_by(SavedSearch.position)
    )
    return list(rows)


def list_users_with_saved_searches(db: Session, min_trust_level: int) -> list[UUID]:
    """Return ids of users who have saved searches and meet the trust level."""
    rows = db.scalars(
        select(User.id)
        .where(
            User.trust_level >= min_trust_level,
            select(SavedSearch.id).where(SavedSearch.user_id == User.id).exists(),
        )
        .order_by(User.created_at, User.id)
    )
    return list(rows)


def get_cursor(db: Session, user_id: UUID, term: str) -> SearchCursor | None:
    """Return the stored cursor for (user, term), or None on first search."""
    # Column select so a cursor moved by advance_cursor's bulk UPDATE is never read stale
    row = db.execute(
        select(SavedSearchCursor.last_post_created_at, SavedSearchCursor.last_post_id).where(
            SavedSearchCursor.user_id == user_id,
            SavedSearchCursor.term == term,
        )
    ).first()
    if row is None:
        return None
    return SearchCursor(created_at=row[0], post_id=row[1])


def advance_cursor(db: Session, user_id: UUID, term: str, position: SearchCursor) -> bool:
    """Move the (user, term) cursor forward to position.

    Does not commit. Positions at or before the stored cursor are ignored.

    Returns:
        True if the cursor was created or moved, False if it was already ahead.
    """
    result = db.execute(
        update(SavedSearchCursor)
        .where(
            SavedSearchCursor.user_id == user_id,
            SavedSearchCursor.term == term,
            or_(
                SavedSearchCursor.last_post_created_at < position.created_at,
                and_(
                    SavedSearchCursor.last_post_created_at == position.created_at,
                    SavedSearchCursor.last_post_id < position.post_id,
                ),
            ),
        )
        .values(
            last_post_created_at=position.created_at,
            last_post_id=position.post_id,
            updated_at=func.now(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        return True

    if get_cursor(db, user_id, term) is not None:
        return False

    db.add(
        SavedSearchCursor(
            user_id=user_id,
            term=term,
            last_post_created_at=position.created_at,
            last_post_id=position.post_id,
        )
    )
    db.flush()
    return True


def prune_stale_cursors(
    db: Session,
    user_id: UUID,
    *,
    keep_terms: list[str],
    settings: Settings,
    now: datetime | None = None,
) -> int:
    """Delete cursors of terms not in keep_terms that are older than the recency window.

    Such a cursor sits before every post the notifier could still report,
    so dropping it cannot cause a repeat. Newer cursors of removed terms
    are kept. Does not commit.

    Returns:
        Number of cursors deleted.
    """
    now = now or datetime.now(UTC)
    cutoff = now - timedelta(hours=settings.saved_search_recency_hours)

    conditions = [
        SavedSearchCursor.user_id == user_id,
        SavedSearchCursor.last_post_created_at < cutoff,
    ]
    if keep_terms:
        conditions.append(SavedSearchCursor.term.not_in(keep_terms))

    result = db.execute(
        delete(SavedSearchCursor).where(*conditions).execution_options(synchronize_session=False)
    )
    return result.rowcount


# =============================================================================
# Saved Search Management
# =============================================================================


def normalize_terms(terms: list[str], settings: Settings) -> list[str]:
    """Strip whitespace, drop blanks, and enforce count/length limits.

    Raises:
        InvalidRequestError(E_SAVED_SEARCH_TOO_LONG): A term exceeds the max length.
        InvalidRequestError(E_TOO_MANY_SAVED_SEARCHES): Too many terms.
    """
    cleaned = [t.strip() for t in terms]
    cleaned = [t for t in cleaned if t]

    for term in cleaned:
        if len(term) > settings.saved_search_max_term_length:
            raise InvalidRequestError(
                ApiErrorCode.E_SAVED_SEARCH_TOO_LONG,
                f"Saved search terms must be at most "
                f"{settings.saved_search_max_term_length} characters",
            )

    if len(cleaned) > settings.saved_search_max_terms:
        raise InvalidRequestError(
            ApiErrorCode.E_TOO_MANY_SAVED_SEARCHES,
            f"At most {settings.saved_search_max_terms} saved searches are allowed",
        )

    return cleaned


def _require_trust_level(user: User, settings: Settings) -> None:
    if user.trust_level < settings.saved_searches_min_trust_level:
        raise ForbiddenError(
            ApiErrorCode.E_TRUST_LEVEL_TOO_LOW,
            f"Saved searches require trust level {settings.saved_searches_min_trust_level}",
        )


def _to_out(terms: list[str], settings: Settings) -> SavedSearchesOut:
    return SavedSearchesOut(
        searches=terms,
        min_trust_level=settings.saved_searches_min_trust_level,
        max_terms=settings.saved_search_max_terms,
    )


def get_saved_searches_for_user(
    db: Session, user_id: UUID, settings: Settings | None = None
) -> SavedSearchesOut:
    """Get a user's saved searches.

    Raises:
        NotFoundError(E_USER_NOT_FOUND): If the user doesn't exist.
    """
    settings = settings or get_settings()
    get_user_or_404(db, user_id)
    return _to_out(list_saved_search_terms(db, user_id), settings)


def replace_saved_searches(
    db: Session,
    user_id: UUID,
    terms: list[str],
    settings: Settings | None = None,
) -> SavedSearchesOut:
    """Replace a user's saved searches with terms, in order.

    Cursors of removed terms are kept until they fall outside the recency
    window, so re-adding a term does not report its posts again.

    Raises:
        NotFoundError(E_USER_NOT_FOUND): If the user doesn't exist.
        ForbiddenError(E_TRUST_LEVEL_TOO_LOW): User is below the minimum trust level.
        InvalidRequestError: Terms violate count or length limits.
    """
    settings = settings or get_settings()
    user = get_user_or_404(db, user_id)
    _require_trust_level(user, settings)
    cleaned = normalize_terms(terms, settings)

    try:
        db.execute(delete(SavedSearch).where(SavedSearch.user_id == user_id))
        db.flush()
        for position, term in enumerate(cleaned):
            db.add(SavedSearch(user_id=user_id, position=position, term=term))

        pruned = prune_stale_cursors(db, user_id, keep_terms=cleaned, settings=settings)

        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "saved_searches_replaced",
        user_id=str(user_id),
        term_count=len(cleaned),
        pruned_cursor_count=pruned,
    )
    return _to_out(cleaned, settings)
