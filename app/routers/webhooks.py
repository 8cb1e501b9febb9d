"""Inbound webhooks (Stripe)."""
import logging
from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
import stripe

from app.database import get_db
from app.services.payments import construct_webhook_event, PaymentsNotConfigured
from app.services.stripe_webhooks import dispatch_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def process_event(db: Session, event) -> dict:
    """Run the handler and commit, then send the notifications it queued."""
    outbox: list = []
    try:
        result = dispatch_event(db, event, outbox)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Stripe webhook %s failed", event["type"])
        raise HTTPException(status_code=500, detail="Webhook handler failed")
    for send in outbox:
        send()
    return result


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    db: Session = Depends(get_db),
    stripe_signature: str | None = Header(None, alias="Stripe-Signature"),
):
    """Verify the signature, then hand the event to its handler. Unknown event types are acknowledged."""
    if not stripe_signature:
        raise HTTPException(status_code=400, detail="Missing Stripe-Signature header")
    payload = await request.body()
    try:
        event = construct_webhook_event(payload, stripe_signature)
    except PaymentsNotConfigured as e:
        raise HTTPException(status_code=503, detail=str(e))
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid payload")
    except stripe.SignatureVerificationError:
        logger.warning("Stripe webhook signature verification failed")
        raise HTTPException(status_code=400, detail="Invalid signature")

    # Handlers and email sends block, so keep them off the event loop
    result = await run_in_threadpool(process_event, db, event)
    return {"received": True, "type": event["type"], "result": result}
