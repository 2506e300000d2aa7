"""
Blackout and buffer rule lookups.

These reads are lenient: a failure is logged and treated as "no rule
applies" rather than failing the caller.
"""
import logging
from datetime import date
from typing import List, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bayline.models.booking import Activity
from bayline.models.rules import BlackoutRule, BufferRule, RuleScope
from bayline.services.reservations import overlaps

logger = logging.getLogger(__name__)


def _scopes(activity: Activity) -> List[RuleScope]:
    return [RuleScope(activity.value), RuleScope.ALL]


def load_blackouts(db: Session, day: date, activity: Activity) -> List[BlackoutRule]:
    try:
        return (
            db.query(BlackoutRule)
            .filter(BlackoutRule.date_key == day, BlackoutRule.activity.in_(_scopes(activity)))
            .all()
        )
    except SQLAlchemyError:
        logger.warning("blackout rules query failed; proceeding without blackouts", exc_info=True)
        db.rollback()
        return []


def load_buffer_padding(db: Session, activity: Activity) -> Tuple[int, int]:
    """(before, after) minutes: the max of each across matching active rules, 0 if none."""
    try:
        rules = (
            db.query(BufferRule)
            .filter(BufferRule.active == True, BufferRule.activity.in_(_scopes(activity)))  # noqa: E712
            .all()
        )
    except SQLAlchemyError:
        logger.warning("buffer rules query failed; proceeding without buffers", exc_info=True)
        db.rollback()
        return 0, 0

    before = max([rule.before_min or 0 for rule in rules], default=0)
    after = max([rule.after_min or 0 for rule in rules], default=0)
    return max(before, 0), max(after, 0)


def blackout_hits(
    blackouts: List[BlackoutRule],
    start_min: int,
    end_min: int,
    open_start_min: int,
    open_end_min: int,
) -> bool:
    """True if [start_min, end_min) overlaps any blackout; open-ended rules run to the window edge."""
    for rule in blackouts:
        b_start = open_start_min if rule.start_min is None else rule.start_min
        b_end = open_end_min if rule.end_min is None else rule.end_min
        if overlaps(start_min, end_min, b_start, b_end):
            return True
    return False
