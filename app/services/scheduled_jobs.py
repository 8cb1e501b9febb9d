"""Background jobs run by APScheduler: NFT cache cleanup and membership credit expiry."""
import logging

from app.database import SessionLocal
from app.services.credits import expire_credits
from app.services.nft_verification import cleanup_expired_verifications

logger = logging.getLogger(__name__)


def run_nft_cache_cleanup_job() -> None:
    """Hourly: delete NFT verification cache rows past their TTL."""
    db = SessionLocal()
    try:
        removed = cleanup_expired_verifications(db)
        db.commit()
        if removed:
            logger.info("NFT cache cleanup removed %s expired verifications", removed)
    except Exception:
        db.rollback()
        logger.exception("NFT cache cleanup failed")
    finally:
        db.close()


def run_credit_expiry_job() -> None:
    """Daily: expire active membership credits whose billing cycle has ended."""
    db = SessionLocal()
    try:
        expired = expire_credits(db)
        db.commit()
        logger.info("Credit expiry job expired %s credit balances", expired)
    except Exception:
        db.rollback()
        logger.exception("Credit expiry job failed")
    finally:
        db.close()
