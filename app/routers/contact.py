"""Public contact form and newsletter signup."""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_optional_user
from app.models.contact import ContactSubmission, NewsletterSubscriber, SubscriberStatus
from app.models.user import User
from app.rate_limit import rate_limit
from app.schemas.contact import (
    ContactCreate,
    ContactSubmitted,
    NewsletterSubscribe,
    NewsletterUnsubscribe,
    NewsletterPreferences,
    NewsletterResult,
)
from app.services.notifications import send_contact_notification, send_newsletter_welcome
from app.services.time_utils import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(tags=["contact"])

DEFAULT_PREFERENCES = {"events": True, "blog": True, "offers": True}


@router.post("/contact", response_model=ContactSubmitted, status_code=201, dependencies=[Depends(rate_limit("contact"))])
def submit_contact(
    data: ContactCreate,
    db: Session = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
):
    """Store the submission, then alert the admin inbox. A failed email does not fail the request."""
    submission = ContactSubmission(
        name=data.name,
        email=data.email.lower(),
        topic=data.topic,
        message=data.message,
        user_id=current_user.id if current_user else None,
    )
    db.add(submission)
    db.commit()
    db.refresh(submission)
    if not send_contact_notification(submission.name, submission.email, submission.topic.value, submission.message, submission.id):
        logger.warning("Contact notification email not sent for submission %s", submission.id)
    return ContactSubmitted(id=submission.id, message="Thanks for reaching out. We'll get back to you soon.")


@router.post("/newsletter/subscribe", response_model=NewsletterResult, dependencies=[Depends(rate_limit("newsletter"))])
def subscribe(data: NewsletterSubscribe, db: Session = Depends(get_db)):
    email = data.email.lower()
    subscriber = db.query(NewsletterSubscriber).filter(NewsletterSubscriber.email == email).first()
    if subscriber and subscriber.status == SubscriberStatus.active:
        return NewsletterResult(status="already_subscribed", email=email, message="You're already subscribed.")

    if subscriber:
        subscriber.status = SubscriberStatus.active
        subscriber.subscribed_at = utcnow()
        subscriber.unsubscribed_at = None
        if data.preferences is not None:
            subscriber.preferences = {**DEFAULT_PREFERENCES, **data.preferences}
        result = "resubscribed"
        message = "Welcome back! You've been resubscribed."
    else:
        subscriber = NewsletterSubscriber(
            email=email,
            status=SubscriberStatus.active,
            preferences={**DEFAULT_PREFERENCES, **(data.preferences or {})},
            source=data.source or "website",
        )
        db.add(subscriber)
        result = "subscribed"
        message = "Thanks for subscribing!"
    db.commit()
    if not send_newsletter_welcome(email):
        logger.warning("Newsletter welcome email not sent to subscriber %s", subscriber.id)
    return NewsletterResult(status=result, email=email, message=message)


@router.post("/newsletter/unsubscribe", response_model=NewsletterResult, dependencies=[Depends(rate_limit("newsletter"))])
def unsubscribe(data: NewsletterUnsubscribe, db: Session = Depends(get_db)):
    """Same answer whether or not the address was subscribed."""
    email = data.email.lower()
    subscriber = db.query(NewsletterSubscriber).filter(NewsletterSubscriber.email == email).first()
    if subscriber and subscriber.status != SubscriberStatus.unsubscribed:
        subscriber.status = SubscriberStatus.unsubscribed
        subscriber.unsubscribed_at = utcnow()
        db.commit()
    return NewsletterResult(status="unsubscribed", email=email, message="You have been unsubscribed.")


@router.put("/newsletter/preferences", response_model=NewsletterResult, dependencies=[Depends(rate_limit("newsletter"))])
def update_preferences(data: NewsletterPreferences, db: Session = Depends(get_db)):
    email = data.email.lower()
    subscriber = db.query(NewsletterSubscriber).filter(NewsletterSubscriber.email == email).first()
    if not subscriber or subscriber.status != SubscriberStatus.active:
        return NewsletterResult(status="not_subscribed", email=email, message="This address is not subscribed.")
    subscriber.preferences = {**(subscriber.preferences or DEFAULT_PREFERENCES), **data.preferences}
    db.commit()
    return NewsletterResult(status="updated", email=email, message="Preferences updated.")
