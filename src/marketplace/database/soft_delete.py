"""
Soft-delete policy shared by every repository and engine.

Normal reads only see live rows. Deleting is a state transition that stamps
``deleted_at`` once; deleting again changes nothing. Uniqueness rules over
reviews, favorites and active offers are partial indexes over live rows, so a
deleted row never blocks a new one.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Query

from marketplace.utils.time_utils import utc_now


def live(query: Query, model) -> Query:
    """Restrict a query to rows that are not soft-deleted"""
    return query.filter(model.is_deleted.is_(False))


def scoped(query: Query, model, include_deleted: bool = False) -> Query:
    """Apply the live-rows filter unless the caller is on the admin/audit path"""
    return query if include_deleted else live(query, model)


def mark_deleted(obj, now: Optional[datetime] = None) -> bool:
    """
    Soft-delete ``obj`` in place.

    Returns True when the row transitioned to deleted and False when it was
    already deleted, in which case ``deleted_at`` is left untouched.
    """
    if obj.is_deleted:
        return False
    now = now or utc_now()
    obj.is_deleted = True
    obj.deleted_at = now
    obj.updated_at = now
    return True
