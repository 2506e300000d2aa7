from uuid import UUID
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from bayline.db.session import get_db
from bayline.api.deps import get_current_staff
from bayline.core.errors import NotFoundError
from bayline.models.rules import BlackoutRule, BufferRule
from bayline.schemas.common import OkResponse
from bayline.schemas.rules import (
    BlackoutRuleCreate,
    BlackoutRule as BlackoutRuleSchema,
    BufferRuleCreate,
    BufferRuleUpdate,
    BufferRule as BufferRuleSchema,
)

blackout_router = APIRouter(prefix="/admin/blackouts", tags=["Admin - Blackouts"])
buffer_router = APIRouter(prefix="/admin/buffers", tags=["Admin - Buffers"])


# ---------------------------------------------------------------------------
# Blackouts
# ---------------------------------------------------------------------------


@blackout_router.post("", response_model=BlackoutRuleSchema, status_code=status.HTTP_201_CREATED)
def create_blackout(
    data: BlackoutRuleCreate,
    db: Session = Depends(get_db),
    staff_id: str = Depends(get_current_staff),
):
    rule = BlackoutRule(**data.model_dump())
    db.add(rule)
    db.commit()
    db.refresh(rule)
    return rule


@blackout_router.get("", response_model=List[BlackoutRuleSchema])
def list_blackouts(
    date_key: Optional[date] = Query(None, description="Filter by date (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    staff_id: str = Depends(get_current_staff),
):
    query = db.query(BlackoutRule)
    if date_key:
        query = query.filter(BlackoutRule.date_key == date_key)
    return query.order_by(BlackoutRule.date_key, BlackoutRule.start_min).all()


@blackout_router.delete("/{id}", response_model=OkResponse)
def delete_blackout(
    id: UUID,
    db: Session = Depends(get_db),
    staff_id: str = Depends(get_current_staff),
):
    rule = db.query(BlackoutRule).filter(BlackoutRule.id == id).first()
    if not rule:
        raise NotFoundError("Blackout rule not found")
    db.delete(rule)
    db.commit()
    return OkResponse(detail="Blackout rule deleted")


# ---------------------------------------------------------------------------
# Buffers
# ---------------------------------------------------------------------------


@buffer_router.post("", response_model=BufferRuleSchema, status_code=status.HTTP_201_CREATED)
def create_buffer(
    data: BufferRuleCreate,
    db: Session = Depends(get_db),
    staff_id: str = Depends(get_current_staff),
):
    rule = BufferRule(**data.model_dump())
    db.add(rule)
    db.commit()
    db.refresh(rule)
    return rule


@buffer_router.get("", response_model=List[BufferRuleSchema])
def list_buffers(
    db: Session = Depends(get_db),
    staff_id: str = Depends(get_current_staff),
):
    return db.query(BufferRule).order_by(BufferRule.activity).all()


@buffer_router.patch("/{id}", response_model=BufferRuleSchema)
def update_buffer(
    id: UUID,
    data: BufferRuleUpdate,
    db: Session = Depends(get_db),
    staff_id: str = Depends(get_current_staff),
):
    rule = db.query(BufferRule).filter(BufferRule.id == id).first()
    if not rule:
        raise NotFoundError("Buffer rule not found")

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(rule, field, value)
    db.commit()
    db.refresh(rule)
    return rule
