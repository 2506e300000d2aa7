from typing import Optional
from pydantic import BaseModel, UUID4
from datetime import datetime

from bayline.models.resource import ResourceType


class ResourceBase(BaseModel):
    type: ResourceType
    name: str
    sort_order: int = 0


class ResourceCreate(ResourceBase):
    active: Optional[bool] = True


class ResourceUpdate(BaseModel):
    name: Optional[str] = None
    sort_order: Optional[int] = None
    active: Optional[bool] = None


class Resource(ResourceBase):
    id: UUID4
    active: Optional[bool] = None
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
