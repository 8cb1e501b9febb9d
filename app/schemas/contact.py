"""Contact form and newsletter schemas."""
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, field_validator
from app.models.contact import ContactTopic, ContactStatus, SubscriberStatus


class ContactCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    topic: ContactTopic = ContactTopic.general
    message: str = Field(min_length=10, max_length=5000)

    @field_validator("name", "message")
    @classmethod
    def strip(cls, v: str) -> str:
        return v.strip()


class ContactSubmitted(BaseModel):
    id: int
    message: str


class ContactResponse(BaseModel):
    id: int
    name: str
    email: str
    topic: ContactTopic
    message: str
    status: ContactStatus
    admin_notes: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class ContactStatusUpdate(BaseModel):
    status: ContactStatus
    admin_notes: str | None = Field(default=None, max_length=5000)


class NewsletterSubscribe(BaseModel):
    email: EmailStr
    preferences: dict[str, bool] | None = None
    source: str | None = Field(default=None, max_length=50)


class NewsletterUnsubscribe(BaseModel):
    email: EmailStr


class NewsletterPreferences(BaseModel):
    email: EmailStr
    preferences: dict[str, bool]


class NewsletterResult(BaseModel):
    status: str  # subscribed | already_subscribed | resubscribed | unsubscribed | updated
    email: str
    message: str


class NewsletterStats(BaseModel):
    total: int
    active: int
    unsubscribed: int
    bounced: int
    new_last_30_days: int
    by_source: dict[str, int]


class SubscriberResponse(BaseModel):
    id: int
    email: str
    status: SubscriberStatus
    preferences: dict | None = None
    source: str | None = None
    subscribed_at: datetime | None = None
    unsubscribed_at: datetime | None = None

    class Config:
        from_attributes = True
