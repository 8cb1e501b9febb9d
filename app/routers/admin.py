"""Admin dashboard: users, bookings, contact inbox, newsletter, analytics and audit logs."""
from datetime import date, timedelta
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import require_admin
from app.models.booking import Booking, BookingStatus, BookingType, PaymentStatus
from app.models.cafe import CafeOrder
from app.models.contact import ContactSubmission, ContactStatus, NewsletterSubscriber, SubscriberStatus
from app.models.membership import MembershipPlan
from app.models.user import User, UserRole, MembershipStatus
from app.schemas.admin import (
    AdminUserResponse,
    AdminUserListResponse,
    AdminUserUpdate,
    AdminBookingListResponse,
    AdminBookingUpdate,
    RevenueAnalytics,
    BookingAnalytics,
    UserAnalytics,
    AuditLogResponse,
    AuditLogListResponse,
)
from app.schemas.booking import BookingResponse
from app.schemas.contact import ContactResponse, ContactStatusUpdate, NewsletterStats
from app.services import analytics
from app.services import realtime
from app.services.audit_log import (
    create_log,
    diff_changes,
    list_logs,
    ACTION_UPDATE,
    ACTION_DELETE,
    ACTION_STATUS_CHANGE,
    RESOURCE_BOOKING,
    RESOURCE_USER,
)
from app.services.time_utils import utcnow

router = APIRouter(prefix="/admin", tags=["admin"])

DEFAULT_ANALYTICS_DAYS = 30


def _date_range(start_date: date | None, end_date: date | None) -> tuple[date, date]:
    end = end_date or utcnow().date()
    start = start_date or end - timedelta(days=DEFAULT_ANALYTICS_DAYS - 1)
    if start > end:
        raise HTTPException(status_code=400, detail="start_date must be on or before end_date")
    return start, end


def _user_snapshot(user: User) -> dict:
    return {
        "role": user.role.value,
        "membership_plan_id": user.membership_plan_id,
        "membership_status": user.membership_status.value if user.membership_status else None,
        "nft_holder": user.nft_holder,
        "full_name": user.full_name,
    }


def _admin_user(db: Session, user: User) -> AdminUserResponse:
    out = AdminUserResponse.model_validate(user)
    out.booking_count = db.query(func.count(Booking.id)).filter(Booking.user_id == user.id).scalar()
    out.order_count = db.query(func.count(CafeOrder.id)).filter(CafeOrder.user_id == user.id).scalar()
    return out


def _describe(changes: dict) -> str:
    return ", ".join(f"{field} {c['old']} -> {c['new']}" for field, c in changes.items())


def _get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


# Users

@router.get("/users", response_model=AdminUserListResponse)
def list_users(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
    role: UserRole | None = None,
    membership_status: MembershipStatus | None = None,
    nft_holder: bool | None = None,
    search: str | None = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    q = db.query(User)
    if role:
        q = q.filter(User.role == role)
    if membership_status:
        q = q.filter(User.membership_status == membership_status)
    if nft_holder is not None:
        q = q.filter(User.nft_holder == nft_holder)
    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(or_(User.email.ilike(pattern), User.full_name.ilike(pattern)))
    total = q.count()
    users = q.order_by(User.created_at.desc(), User.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return AdminUserListResponse(users=[_admin_user(db, u) for u in users], total=total, page=page, limit=limit)


@router.get("/users/{user_id}", response_model=AdminUserResponse)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    return _admin_user(db, _get_user(db, user_id))


@router.patch("/users/{user_id}", response_model=AdminUserResponse)
def update_user(
    user_id: int,
    data: AdminUserUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    user = _get_user(db, user_id)
    updates = data.model_dump(exclude_unset=True)
    if user.id == current_user.id and "role" in updates and updates["role"] != UserRole.admin:
        raise HTTPException(status_code=400, detail="You cannot remove your own admin role")
    if updates.get("membership_plan_id") is not None:
        if not db.query(MembershipPlan.id).filter(MembershipPlan.id == updates["membership_plan_id"]).first():
            raise HTTPException(status_code=404, detail="Membership plan not found")
    before = _user_snapshot(user)
    for field, value in updates.items():
        setattr(user, field, value)
    db.flush()
    changes = diff_changes(before, _user_snapshot(user))
    if changes:
        create_log(
            db, ACTION_UPDATE, RESOURCE_USER, "User updated",
            f"User {user.email} updated: {', '.join(sorted(changes))}",
            resource_id=user.id, actor=current_user, request=request, meta={"changes": changes},
        )
    db.commit()
    db.refresh(user)
    return _admin_user(db, user)


@router.delete("/users/{user_id}", status_code=204)
def delete_user(
    user_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    user = _get_user(db, user_id)
    if user.id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    create_log(
        db, ACTION_DELETE, RESOURCE_USER, "User deleted", f"User {user.email} deleted",
        resource_id=user.id, actor=current_user, request=request, meta={"email": user.email, "role": user.role.value},
    )
    db.delete(user)
    db.commit()
    return None


# Bookings

@router.get("/bookings", response_model=AdminBookingListResponse)
def list_bookings(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
    status: BookingStatus | None = None,
    booking_type: BookingType | None = None,
    payment_status: PaymentStatus | None = None,
    workspace_id: int | None = None,
    user_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    q = db.query(Booking)
    if status:
        q = q.filter(Booking.status == status)
    if booking_type:
        q = q.filter(Booking.booking_type == booking_type)
    if payment_status:
        q = q.filter(Booking.payment_status == payment_status)
    if workspace_id is not None:
        q = q.filter(Booking.workspace_id == workspace_id)
    if user_id is not None:
        q = q.filter(Booking.user_id == user_id)
    if start_date:
        q = q.filter(Booking.booking_date >= start_date)
    if end_date:
        q = q.filter(Booking.booking_date <= end_date)
    total = q.count()
    rows = (
        q.order_by(Booking.booking_date.desc(), Booking.start_time.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return AdminBookingListResponse(bookings=rows, total=total, page=page, limit=limit)


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking


@router.patch("/bookings/{booking_id}", response_model=BookingResponse)
def update_booking(
    booking_id: int,
    data: AdminBookingUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    before = {"status": booking.status.value, "payment_status": booking.payment_status.value}
    if data.status is not None:
        booking.status = data.status
    if data.payment_status is not None:
        booking.payment_status = data.payment_status
    db.flush()
    changes = diff_changes(before, {"status": booking.status.value, "payment_status": booking.payment_status.value})
    if changes:
        create_log(
            db, ACTION_STATUS_CHANGE, RESOURCE_BOOKING, "Booking updated by admin",
            f"Booking {booking.confirmation_code}: {_describe(changes)}",
            resource_id=booking.id, actor=current_user, request=request, meta={"changes": changes},
        )
    db.commit()
    db.refresh(booking)
    if "status" in changes:
        event = {
            BookingStatus.confirmed: realtime.BOOKING_CONFIRMED,
            BookingStatus.cancelled: realtime.BOOKING_CANCELLED,
        }.get(booking.status)
        if event:
            realtime.publish_booking_event(event, booking)
    return booking


# Contact inbox and newsletter

@router.get("/contact", response_model=list[ContactResponse])
def list_contact_submissions(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
    status: ContactStatus | None = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    q = db.query(ContactSubmission)
    if status:
        q = q.filter(ContactSubmission.status == status)
    return q.order_by(ContactSubmission.created_at.desc(), ContactSubmission.id.desc()).offset(offset).limit(limit).all()


@router.patch("/contact/{submission_id}", response_model=ContactResponse)
def update_contact_submission(
    submission_id: int,
    data: ContactStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    submission = db.query(ContactSubmission).filter(ContactSubmission.id == submission_id).first()
    if not submission:
        raise HTTPException(status_code=404, detail="Submission not found")
    submission.status = data.status
    if data.admin_notes is not None:
        submission.admin_notes = data.admin_notes
    db.commit()
    db.refresh(submission)
    return submission


@router.get("/newsletter/stats", response_model=NewsletterStats)
def newsletter_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    by_status = dict(
        db.query(NewsletterSubscriber.status, func.count(NewsletterSubscriber.id))
        .group_by(NewsletterSubscriber.status)
        .all()
    )
    by_source = dict(
        db.query(func.coalesce(NewsletterSubscriber.source, "unknown"), func.count(NewsletterSubscriber.id))
        .group_by(func.coalesce(NewsletterSubscriber.source, "unknown"))
        .all()
    )
    since = utcnow() - timedelta(days=30)
    recent = (
        db.query(func.count(NewsletterSubscriber.id))
        .filter(NewsletterSubscriber.subscribed_at >= since, NewsletterSubscriber.status == SubscriberStatus.active)
        .scalar()
    )
    return NewsletterStats(
        total=sum(by_status.values()),
        active=by_status.get(SubscriberStatus.active, 0),
        unsubscribed=by_status.get(SubscriberStatus.unsubscribed, 0),
        bounced=by_status.get(SubscriberStatus.bounced, 0),
        new_last_30_days=recent,
        by_source=by_source,
    )


# Analytics

@router.get("/analytics/revenue", response_model=RevenueAnalytics)
def revenue_analytics(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
    start_date: date | None = None,
    end_date: date | None = None,
):
    start, end = _date_range(start_date, end_date)
    return analytics.revenue(db, start, end)


@router.get("/analytics/bookings", response_model=BookingAnalytics)
def booking_analytics(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
    start_date: date | None = None,
    end_date: date | None = None,
):
    start, end = _date_range(start_date, end_date)
    return analytics.booking_stats(db, start, end)


@router.get("/analytics/users", response_model=UserAnalytics)
def user_analytics(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
    start_date: date | None = None,
    end_date: date | None = None,
):
    start, end = _date_range(start_date, end_date)
    return analytics.user_stats(db, start, end)


# Audit logs

@router.get("/audit-logs", response_model=AuditLogListResponse)
def audit_logs(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
    resource_type: str | None = None,
    resource_id: int | None = None,
    actor_user_id: int | None = None,
    action: str | None = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    rows, total = list_logs(
        db,
        resource_type=resource_type,
        resource_id=resource_id,
        actor_user_id=actor_user_id,
        action=action,
        limit=limit,
        offset=offset,
    )
    return AuditLogListResponse(
        logs=[AuditLogResponse.model_validate(r) for r in rows],
        total=total,
        limit=limit,
        offset=offset,
    )
