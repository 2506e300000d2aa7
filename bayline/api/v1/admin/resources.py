from uuid import UUID
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bayline.db.session import get_db
from bayline.api.deps import get_current_staff
from bayline.core.errors import DuplicateNameError, NotFoundError
from bayline.models.resource import Resource, ResourceType
from bayline.schemas.resource import (
    ResourceCreate,
    ResourceUpdate,
    Resource as ResourceSchema,
)

router = APIRouter(prefix="/admin/resources", tags=["Admin - Resources"])


@router.post("", response_model=ResourceSchema, status_code=status.HTTP_201_CREATED)
def create_resource(
    data: ResourceCreate,
    db: Session = Depends(get_db),
    staff_id: str = Depends(get_current_staff),
):
    resource = Resource(**data.model_dump())
    db.add(resource)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateNameError("A resource with this name already exists")
    db.refresh(resource)
    return resource


@router.get("", response_model=List[ResourceSchema])
def list_resources(
    type: Optional[ResourceType] = Query(None, description="Filter by resource type"),
    active_only: bool = Query(False),
    db: Session = Depends(get_db),
    staff_id: str = Depends(get_current_staff),
):
    query = db.query(Resource)
    if type:
        query = query.filter(Resource.type == type)
    if active_only:
        query = query.filter(Resource.is_active)
    return query.order_by(Resource.type, Resource.sort_order, Resource.name).all()


@router.patch("/{id}", response_model=ResourceSchema)
def update_resource(
    id: UUID,
    data: ResourceUpdate,
    db: Session = Depends(get_db),
    staff_id: str = Depends(get_current_staff),
):
    """Rename, reorder or (de)activate. Deactivation does not touch existing reservations."""
    resource = db.query(Resource).filter(Resource.id == id).first()
    if not resource:
        raise NotFoundError("Resource not found")

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(resource, field, value)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateNameError("A resource with this name already exists")
    db.refresh(resource)
    return resource
