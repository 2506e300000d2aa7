import uuid
import enum
from sqlalchemy import Column, String, Boolean, Integer, DateTime, func, or_, Uuid, Enum as SAEnum
from sqlalchemy.ext.hybrid import hybrid_property
from bayline.db.session import Base


class ResourceType(str, enum.Enum):
    AXE_BAY = "AXE_BAY"
    DUCKPIN_LANE = "DUCKPIN_LANE"
    PARTY_AREA = "PARTY_AREA"


class Resource(Base):
    __tablename__ = "resources"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    type = Column(SAEnum(ResourceType, native_enum=False), nullable=False, index=True)
    name = Column(String(100), nullable=False, unique=True)
    # NULL is treated as active; see is_active
    active = Column(Boolean, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @hybrid_property
    def is_active(self) -> bool:
        return self.active is not False

    @is_active.expression
    def is_active(cls):
        return or_(cls.active == True, cls.active.is_(None))  # noqa: E712
