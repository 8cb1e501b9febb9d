"""Append-only audit log of admin and staff changes.
No updates or deletes - every record is permanent."""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from app.database import Base, JSONType


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)

    # action: create | update | delete | status_change | refund
    action = Column(String(32), nullable=False, index=True)
    # resource_type: booking | user | workspace | menu_item | order | membership
    resource_type = Column(String(32), nullable=False, index=True)
    resource_id = Column(Integer, nullable=True, index=True)

    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)

    # Optional structured data (e.g. old/new values of changed fields)
    meta = Column(JSONType, nullable=True)

    # Who did it (if applicable)
    actor_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    actor_email = Column(String(255), nullable=True)

    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)

    # UTC only - server_default
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
