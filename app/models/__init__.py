"""
All SQLAlchemy models. Schema is the source of truth for new DBs.
Base.metadata.create_all() creates every table; no migration scripts needed for fresh installs.
"""
from app.models.user import User
from app.models.membership import MembershipPlan, MembershipCredit, CreditTransaction
from app.models.workspace import Workspace
from app.models.booking import Booking
from app.models.cafe import MenuItem, CafeOrder
from app.models.nft_verification import NftVerification
from app.models.contact import ContactSubmission, NewsletterSubscriber
from app.models.content import BlogPost, BlogCategory, Event, EventRsvp
from app.models.audit_log import AuditLog

__all__ = [
    "User",
    "MembershipPlan",
    "MembershipCredit",
    "CreditTransaction",
    "Workspace",
    "Booking",
    "MenuItem",
    "CafeOrder",
    "NftVerification",
    "ContactSubmission",
    "NewsletterSubscriber",
    "BlogPost",
    "BlogCategory",
    "Event",
    "EventRsvp",
    "AuditLog",
]
