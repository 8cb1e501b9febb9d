"""Contact form submissions and newsletter subscribers."""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.sql import func
from app.database import Base, JSONType
import enum


class ContactTopic(str, enum.Enum):
    general = "general"
    booking = "booking"
    partnership = "partnership"
    press = "press"


class ContactStatus(str, enum.Enum):
    new = "new"
    in_progress = "in_progress"
    resolved = "resolved"
    closed = "closed"


class SubscriberStatus(str, enum.Enum):
    active = "active"
    unsubscribed = "unsubscribed"
    bounced = "bounced"


class ContactSubmission(Base):
    __tablename__ = "contact_submissions"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    topic = Column(SQLEnum(ContactTopic), nullable=False, default=ContactTopic.general)
    message = Column(Text, nullable=False)
    status = Column(SQLEnum(ContactStatus), nullable=False, default=ContactStatus.new, index=True)
    admin_notes = Column(Text, nullable=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class NewsletterSubscriber(Base):
    __tablename__ = "newsletter_subscribers"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    status = Column(SQLEnum(SubscriberStatus), nullable=False, default=SubscriberStatus.active, index=True)
    preferences = Column(JSONType, nullable=True)
    source = Column(String(50), nullable=True)
    subscribed_at = Column(DateTime(timezone=True), server_default=func.now())
    unsubscribed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
