"""Blog posts, blog categories and community events with RSVPs."""
import logging
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user, call_stripe
from app.models.booking import PaymentStatus
from app.models.content import BlogPost, BlogCategory, Event, EventRsvp, RsvpStatus
from app.models.user import User
from app.schemas.content import (
    BlogPostSummary,
    BlogPostResponse,
    BlogPostListResponse,
    BlogCategoryResponse,
    EventResponse,
    RsvpCreate,
    RsvpResponse,
)
from app.services import payments
from app.services.time_utils import utcnow, as_utc

logger = logging.getLogger(__name__)

router = APIRouter(tags=["content"])


# Blog

@router.get("/blog/posts", response_model=BlogPostListResponse)
def list_posts(
    db: Session = Depends(get_db),
    tag: str | None = None,
    category: str | None = None,
    search: str | None = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
):
    q = db.query(BlogPost).filter(BlogPost.published == True)
    if category:
        q = q.filter(BlogPost.category == category)
    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(or_(BlogPost.title.ilike(pattern), BlogPost.excerpt.ilike(pattern), BlogPost.content.ilike(pattern)))
    posts = q.order_by(BlogPost.published_at.desc(), BlogPost.id.desc()).all()
    if tag:
        # tags is a JSON list; filtered here so the query works on Postgres and SQLite alike
        wanted = tag.lower()
        posts = [p for p in posts if wanted in [t.lower() for t in (p.tags or [])]]
    start = (page - 1) * limit
    return BlogPostListResponse(
        posts=[BlogPostSummary.model_validate(p) for p in posts[start:start + limit]],
        total=len(posts),
        page=page,
        limit=limit,
    )


@router.get("/blog/posts/{slug}", response_model=BlogPostResponse)
def get_post(slug: str, db: Session = Depends(get_db)):
    post = db.query(BlogPost).filter(BlogPost.slug == slug, BlogPost.published == True).first()
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


@router.get("/blog/categories", response_model=list[BlogCategoryResponse])
def list_categories(db: Session = Depends(get_db)):
    counts = dict(
        db.query(BlogPost.category, func.count(BlogPost.id))
        .filter(BlogPost.published == True)
        .group_by(BlogPost.category)
        .all()
    )
    out = []
    for category in db.query(BlogCategory).order_by(BlogCategory.name).all():
        row = BlogCategoryResponse.model_validate(category)
        row.post_count = counts.get(category.slug, 0)
        out.append(row)
    return out


# Events

def _confirmed_count(db: Session, event_id: int) -> int:
    return (
        db.query(func.count(EventRsvp.id))
        .filter(EventRsvp.event_id == event_id, EventRsvp.status == RsvpStatus.confirmed)
        .scalar()
    )


def _event_response(db: Session, event: Event) -> EventResponse:
    out = EventResponse.model_validate(event)
    if event.capacity is not None:
        out.spots_remaining = max(0, event.capacity - _confirmed_count(db, event.id))
    return out


def _get_event(db: Session, slug: str) -> Event:
    event = db.query(Event).filter(Event.slug == slug).first()
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


@router.get("/events", response_model=list[EventResponse])
def list_events(
    db: Session = Depends(get_db),
    include_past: bool = False,
    limit: int = Query(20, ge=1, le=100),
):
    q = db.query(Event)
    if not include_past:
        q = q.filter(Event.end_time >= utcnow())
    events = q.order_by(Event.start_time).limit(limit).all()
    return [_event_response(db, e) for e in events]


@router.get("/events/{slug}", response_model=EventResponse)
def get_event(slug: str, db: Session = Depends(get_db)):
    return _event_response(db, _get_event(db, slug))


@router.post("/events/{slug}/rsvp", response_model=RsvpResponse, status_code=201)
def rsvp(
    slug: str,
    data: RsvpCreate | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Confirmed while seats remain, waitlisted after. Paid events open a payment intent for confirmed seats."""
    event = _get_event(db, slug)
    if as_utc(event.end_time) < utcnow():
        raise HTTPException(status_code=400, detail="This event has already ended")
    paid = float(event.price or 0) > 0
    if paid and not payments.stripe_configured():
        raise HTTPException(status_code=503, detail="Payments are not configured. Set STRIPE_SECRET_KEY in .env.")

    existing = db.query(EventRsvp).filter(EventRsvp.event_id == event.id, EventRsvp.user_id == current_user.id).first()
    if existing and existing.status != RsvpStatus.cancelled:
        raise HTTPException(status_code=409, detail="You have already RSVP'd to this event")

    full = event.capacity is not None and _confirmed_count(db, event.id) >= event.capacity
    status = RsvpStatus.waitlist if full else RsvpStatus.confirmed
    record = existing or EventRsvp(event_id=event.id, user_id=current_user.id)
    record.status = status
    record.guest_name = (data.guest_name if data else None) or current_user.full_name
    record.guest_email = (data.guest_email if data else None) or current_user.email
    record.payment_status = PaymentStatus.pending if paid and status == RsvpStatus.confirmed else None
    if not existing:
        db.add(record)
    db.flush()

    client_secret = None
    if record.payment_status == PaymentStatus.pending:
        customer = call_stripe(payments.get_or_create_customer, current_user)
        intent = call_stripe(
            payments.create_payment_intent,
            payments.dollars_to_cents(float(event.price)),
            customer.id,
            {"rsvp_id": record.id, "event_id": event.id, "user_id": current_user.id},
            f"Event: {event.title}",
        )
        record.payment_intent_id = intent["id"]
        client_secret = intent["client_secret"]
    db.commit()
    db.refresh(record)

    if status == RsvpStatus.waitlist:
        message = "This event is full. You've been added to the waitlist."
    elif client_secret:
        message = "Seat reserved. Complete payment to confirm."
    else:
        message = "You're going!"
    return RsvpResponse(
        id=record.id,
        event_id=event.id,
        status=record.status,
        payment_status=record.payment_status,
        client_secret=client_secret,
        message=message,
    )


@router.delete("/events/{slug}/rsvp", response_model=RsvpResponse)
def cancel_rsvp(
    slug: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Cancel the caller's RSVP; on free events the first waitlisted guest takes the seat."""
    event = _get_event(db, slug)
    record = db.query(EventRsvp).filter(EventRsvp.event_id == event.id, EventRsvp.user_id == current_user.id).first()
    if not record or record.status == RsvpStatus.cancelled:
        raise HTTPException(status_code=404, detail="No RSVP found for this event")
    freed_seat = record.status == RsvpStatus.confirmed
    record.status = RsvpStatus.cancelled
    db.flush()
    if freed_seat and float(event.price or 0) == 0:
        next_in_line = (
            db.query(EventRsvp)
            .filter(EventRsvp.event_id == event.id, EventRsvp.status == RsvpStatus.waitlist)
            .order_by(EventRsvp.created_at, EventRsvp.id)
            .first()
        )
        if next_in_line:
            next_in_line.status = RsvpStatus.confirmed
            logger.info("Promoted RSVP %s from waitlist for event %s", next_in_line.id, event.id)
    db.commit()
    return RsvpResponse(
        id=record.id,
        event_id=event.id,
        status=record.status,
        payment_status=record.payment_status,
        message="Your RSVP has been cancelled.",
    )