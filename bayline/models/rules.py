import uuid
import enum
from sqlalchemy import Column, String, Boolean, Integer, Date, DateTime, func, Uuid, Enum as SAEnum
from bayline.db.session import Base


class RuleScope(str, enum.Enum):
    AXE = "AXE"
    DUCKPIN = "DUCKPIN"
    COMBO = "COMBO"
    ALL = "ALL"


class BlackoutRule(Base):
    __tablename__ = "blackout_rules"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    date_key = Column(Date, nullable=False, index=True)
    # Both NULL means the whole day; one NULL extends to that edge of the operating window
    start_min = Column(Integer, nullable=True)
    end_min = Column(Integer, nullable=True)
    activity = Column(SAEnum(RuleScope, native_enum=False), nullable=False, default=RuleScope.ALL)
    reason = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class BufferRule(Base):
    __tablename__ = "buffer_rules"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    activity = Column(SAEnum(RuleScope, native_enum=False), nullable=False, default=RuleScope.ALL)
    before_min = Column(Integer, nullable=False, default=0)
    after_min = Column(Integer, nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
