"""Cached NFT ownership checks (one row per user and wallet)."""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from app.database import Base


class NftVerification(Base):
    __tablename__ = "nft_verifications"
    __table_args__ = (UniqueConstraint("user_id", "wallet_address", name="uq_nft_verifications_user_wallet"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    wallet_address = Column(String(42), nullable=False, index=True)
    nft_balance = Column(Integer, nullable=False, default=0)
    verified_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
