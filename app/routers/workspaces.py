"""Workspaces: public catalogue, availability search and admin management."""
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import require_admin
from app.models.booking import Booking
from app.models.user import User
from app.models.workspace import Workspace, WorkspaceType, ResourceCategory
from app.schemas.workspace import (
    WorkspaceCreate,
    WorkspaceUpdate,
    WorkspaceResponse,
    WorkspaceAvailability,
    AvailabilityResponse,
)
from app.services.availability import (
    BLOCKING_STATUSES,
    check_availability,
    get_available_slots,
    validate_availability_query,
)
from app.services.audit_log import (
    create_log,
    diff_changes,
    ACTION_CREATE,
    ACTION_UPDATE,
    ACTION_DELETE,
    RESOURCE_WORKSPACE,
)
from app.services.nft_discounts import calculate_workspace_price
from app.services.time_utils import utcnow

router = APIRouter(prefix="/workspaces", tags=["workspaces"])

_AUDITED_FIELDS = (
    "name", "type", "resource_category", "capacity", "base_price_hourly",
    "requires_credits", "min_duration", "max_duration", "available", "floor_location",
)


def workspace_response(workspace: Workspace) -> WorkspaceResponse:
    out = WorkspaceResponse.model_validate(workspace)
    out.nft_holder_price = calculate_workspace_price(float(workspace.base_price_hourly), True).final
    return out


def _snapshot(workspace: Workspace) -> dict:
    values = {}
    for field in _AUDITED_FIELDS:
        value = getattr(workspace, field)
        values[field] = value.value if hasattr(value, "value") else value
    return values


def _get_or_404(db: Session, workspace_id: int) -> Workspace:
    workspace = db.query(Workspace).filter(Workspace.id == workspace_id).first()
    if not workspace:
        raise HTTPException(status_code=404, detail="Workspace not found")
    return workspace


@router.get("", response_model=list[WorkspaceResponse])
def list_workspaces(
    db: Session = Depends(get_db),
    type: WorkspaceType | None = None,
    resource_category: ResourceCategory | None = None,
    min_capacity: int | None = Query(None, ge=1),
    available: bool | None = None,
    min_price: float | None = Query(None, ge=0),
    max_price: float | None = Query(None, ge=0),
):
    q = db.query(Workspace)
    if type:
        q = q.filter(Workspace.type == type)
    if resource_category:
        q = q.filter(Workspace.resource_category == resource_category)
    if min_capacity is not None:
        q = q.filter(Workspace.capacity >= min_capacity)
    if available is not None:
        q = q.filter(Workspace.available == available)
    if min_price is not None:
        q = q.filter(Workspace.base_price_hourly >= min_price)
    if max_price is not None:
        q = q.filter(Workspace.base_price_hourly <= max_price)
    return [workspace_response(w) for w in q.order_by(Workspace.id).all()]


@router.get("/hot-desks", response_model=list[WorkspaceResponse])
def list_hot_desks(db: Session = Depends(get_db)):
    rows = (
        db.query(Workspace)
        .filter(Workspace.resource_category == ResourceCategory.desk, Workspace.available == True)
        .order_by(Workspace.id)
        .all()
    )
    return [workspace_response(w) for w in rows]


@router.get("/meeting-rooms", response_model=list[WorkspaceResponse])
def list_meeting_rooms(db: Session = Depends(get_db)):
    rows = (
        db.query(Workspace)
        .filter(Workspace.resource_category == ResourceCategory.meeting_room, Workspace.available == True)
        .order_by(Workspace.capacity, Workspace.id)
        .all()
    )
    return [workspace_response(w) for w in rows]


@router.get("/availability", response_model=AvailabilityResponse)
def get_availability(
    db: Session = Depends(get_db),
    booking_date: date = Query(..., alias="date"),
    workspace_id: int | None = None,
    start_time: str | None = None,
    end_time: str | None = None,
    type: WorkspaceType | None = None,
    resource_category: ResourceCategory | None = None,
):
    """Free and booked slots per workspace for a day; with start/end, whether that window is free."""
    error = validate_availability_query(booking_date, start_time, end_time, today=utcnow().date())
    if error:
        raise HTTPException(status_code=400, detail=error)

    q = db.query(Workspace).filter(Workspace.available == True)
    if workspace_id is not None:
        q = q.filter(Workspace.id == workspace_id)
    if type:
        q = q.filter(Workspace.type == type)
    if resource_category:
        q = q.filter(Workspace.resource_category == resource_category)
    workspaces = q.order_by(Workspace.id).all()
    if workspace_id is not None and not workspaces:
        raise HTTPException(status_code=404, detail="Workspace not found")

    results = []
    for workspace in workspaces:
        slots = get_available_slots(db, workspace.id, booking_date, float(workspace.min_duration))
        is_available = None
        if start_time:
            is_available, _ = check_availability(db, workspace.id, booking_date, start_time, end_time)
        results.append(
            WorkspaceAvailability(
                workspace=workspace_response(workspace),
                date=booking_date,
                is_available=is_available,
                available_slots=[s for s in slots if s.available],
                booked_slots=[s for s in slots if not s.available],
            )
        )
    return AvailabilityResponse(date=booking_date, start_time=start_time, end_time=end_time, workspaces=results)


@router.get("/{workspace_id}", response_model=WorkspaceResponse)
def get_workspace(workspace_id: int, db: Session = Depends(get_db)):
    return workspace_response(_get_or_404(db, workspace_id))


@router.post("", response_model=WorkspaceResponse, status_code=201)
def create_workspace(
    data: WorkspaceCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    workspace = Workspace(**data.model_dump())
    db.add(workspace)
    db.flush()
    create_log(
        db, ACTION_CREATE, RESOURCE_WORKSPACE, "Workspace created",
        f"Workspace '{workspace.name}' created",
        resource_id=workspace.id, actor=current_user, request=request,
        meta={"workspace": _snapshot(workspace)},
    )
    db.commit()
    db.refresh(workspace)
    return workspace_response(workspace)


@router.patch("/{workspace_id}", response_model=WorkspaceResponse)
def update_workspace(
    workspace_id: int,
    data: WorkspaceUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    workspace = _get_or_404(db, workspace_id)
    updates = data.model_dump(exclude_unset=True)
    min_d = updates.get("min_duration", workspace.min_duration)
    max_d = updates.get("max_duration", workspace.max_duration)
    if float(max_d) < float(min_d):
        raise HTTPException(status_code=400, detail="max_duration must be greater than or equal to min_duration")
    before = _snapshot(workspace)
    for field, value in updates.items():
        setattr(workspace, field, value)
    db.flush()
    changes = diff_changes(before, _snapshot(workspace))
    if changes:
        create_log(
            db, ACTION_UPDATE, RESOURCE_WORKSPACE, "Workspace updated",
            f"Workspace '{workspace.name}' updated: {', '.join(sorted(changes))}",
            resource_id=workspace.id, actor=current_user, request=request,
            meta={"changes": changes},
        )
    db.commit()
    db.refresh(workspace)
    return workspace_response(workspace)


@router.delete("/{workspace_id}", status_code=204)
def delete_workspace(
    workspace_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    workspace = _get_or_404(db, workspace_id)
    future = (
        db.query(Booking.id)
        .filter(
            Booking.workspace_id == workspace.id,
            Booking.booking_date >= utcnow().date(),
            Booking.status.in_(BLOCKING_STATUSES),
        )
        .first()
    )
    if future:
        raise HTTPException(status_code=409, detail="Workspace has upcoming bookings. Cancel them or mark it unavailable instead.")
    if db.query(Booking.id).filter(Booking.workspace_id == workspace.id).first():
        # Booking history references this row; retire it instead of deleting
        workspace.available = False
        create_log(
            db, ACTION_UPDATE, RESOURCE_WORKSPACE, "Workspace retired",
            f"Workspace '{workspace.name}' has booking history and was marked unavailable instead of deleted",
            resource_id=workspace.id, actor=current_user, request=request,
        )
        db.commit()
        return None
    create_log(
        db, ACTION_DELETE, RESOURCE_WORKSPACE, "Workspace deleted",
        f"Workspace '{workspace.name}' deleted",
        resource_id=workspace.id, actor=current_user, request=request,
        meta={"workspace": _snapshot(workspace)},
    )
    db.delete(workspace)
    db.commit()
    return None
