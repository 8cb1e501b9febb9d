"""Workspace and availability schemas."""
from datetime import date
from pydantic import BaseModel, Field, model_validator
from app.models.workspace import WorkspaceType, ResourceCategory


class WorkspaceBase(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    type: WorkspaceType
    resource_category: ResourceCategory
    description: str | None = None
    capacity: int = Field(default=1, ge=1, le=100)
    base_price_hourly: float = Field(ge=0)
    requires_credits: bool = False
    min_duration: float = Field(default=1, gt=0)
    max_duration: float = Field(default=8, gt=0)
    amenities: list[str] = []
    images: list[str] = []
    available: bool = True
    floor_location: str | None = None


class WorkspaceCreate(WorkspaceBase):
    @model_validator(mode="after")
    def durations_ordered(self):
        if self.max_duration < self.min_duration:
            raise ValueError("max_duration must be greater than or equal to min_duration")
        return self


class WorkspaceUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    type: WorkspaceType | None = None
    resource_category: ResourceCategory | None = None
    description: str | None = None
    capacity: int | None = Field(default=None, ge=1, le=100)
    base_price_hourly: float | None = Field(default=None, ge=0)
    requires_credits: bool | None = None
    min_duration: float | None = Field(default=None, gt=0)
    max_duration: float | None = Field(default=None, gt=0)
    amenities: list[str] | None = None
    images: list[str] | None = None
    available: bool | None = None
    floor_location: str | None = None


class WorkspaceResponse(WorkspaceBase):
    id: int
    amenities: list[str] | None = None
    images: list[str] | None = None
    nft_holder_price: float | None = None

    class Config:
        from_attributes = True


class TimeSlot(BaseModel):
    start_time: str
    end_time: str
    available: bool


class WorkspaceAvailability(BaseModel):
    workspace: WorkspaceResponse
    date: date
    is_available: bool | None = None  # set when a start/end window was queried
    available_slots: list[TimeSlot]
    booked_slots: list[TimeSlot]


class AvailabilityResponse(BaseModel):
    date: date
    start_time: str | None = None
    end_time: str | None = None
    workspaces: list[WorkspaceAvailability]
