"""Bookable workspaces: hot desks and meeting rooms."""
from sqlalchemy import Column, Integer, String, Text, Numeric, Boolean, DateTime, Enum as SQLEnum
from sqlalchemy.sql import func
from app.database import Base, JSONType, enum_values
import enum


class WorkspaceType(str, enum.Enum):
    hot_desk = "hot-desk"
    focus_room = "focus-room"
    collaborate_room = "collaborate-room"
    boardroom = "boardroom"
    communications_pod = "communications-pod"


class ResourceCategory(str, enum.Enum):
    desk = "desk"
    meeting_room = "meeting-room"


class Workspace(Base):
    __tablename__ = "workspaces"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    type = Column(SQLEnum(WorkspaceType, values_callable=enum_values), nullable=False, index=True)
    resource_category = Column(SQLEnum(ResourceCategory, values_callable=enum_values), nullable=False, index=True)
    description = Column(Text, nullable=True)
    capacity = Column(Integer, nullable=False, default=1)
    base_price_hourly = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    requires_credits = Column(Boolean, nullable=False, default=False)

    # Hours
    min_duration = Column(Numeric(4, 2, asdecimal=False), nullable=False, default=1)
    max_duration = Column(Numeric(4, 2, asdecimal=False), nullable=False, default=8)

    amenities = Column(JSONType, nullable=True)
    images = Column(JSONType, nullable=True)
    available = Column(Boolean, nullable=False, default=True)
    floor_location = Column(String(100), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
