"""CitizenSpace – FastAPI application."""
# Load .env before any app code that might read config
from dotenv import load_dotenv
from pathlib import Path
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.database import Base, engine, SessionLocal
# Import models so Base.metadata has all tables before create_all (schema source of truth)
from app.models import (  # noqa: F401
    User, MembershipPlan, MembershipCredit, CreditTransaction, Workspace, Booking,
    MenuItem, CafeOrder, NftVerification, ContactSubmission, NewsletterSubscriber,
    BlogPost, BlogCategory, Event, EventRsvp, AuditLog,
)
from app.routers import (
    auth, nft, workspaces, bookings, memberships, payments, webhooks,
    menu, orders, contact, content, realtime, admin,
)
from app.seed import seed_all

log = logging.getLogger("uvicorn.error")

settings = get_settings()
app = FastAPI(title=settings.app_name, debug=settings.debug)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(nft.router)
app.include_router(workspaces.router)
app.include_router(bookings.router)
app.include_router(memberships.router)
app.include_router(payments.router)
app.include_router(webhooks.router)
app.include_router(menu.router)
app.include_router(orders.router)
app.include_router(contact.router)
app.include_router(content.router)
app.include_router(realtime.router)
app.include_router(admin.router)

scheduler = None


def _log_integrations() -> None:
    if settings.mailgun_api_key and settings.mailgun_domain:
        from_addr = settings.mailgun_from_email or ""
        from_domain = from_addr.split("@")[-1].lower() if "@" in from_addr else ""
        if from_domain and from_domain != settings.mailgun_domain.lower():
            log.warning("[Mailgun] from=%s does not match domain=%s. Emails may not be delivered.", from_addr, settings.mailgun_domain)
        else:
            log.info("[Mailgun] Using domain=%s from=%s", settings.mailgun_domain, from_addr)
    elif settings.sendgrid_api_key:
        log.info("[SendGrid] Using from=%s", settings.sendgrid_from_email)
    else:
        log.warning("[Email] Not configured - emails will be skipped; set MAILGUN_* or SENDGRID_API_KEY in .env")
    if not settings.stripe_secret_key:
        log.warning("[Stripe] Not configured - payment endpoints will return 503")
    if not (settings.pusher_app_id and settings.pusher_key and settings.pusher_secret):
        log.info("[Pusher] Not configured - realtime events are skipped")
    if not (settings.chain_rpc_url and settings.nft_contract_address):
        log.info("[NFT] Not configured - wallet verification will return 503")


def _start_scheduler() -> None:
    global scheduler
    from apscheduler.schedulers.background import BackgroundScheduler
    from app.services.scheduled_jobs import run_nft_cache_cleanup_job, run_credit_expiry_job

    scheduler = BackgroundScheduler(timezone="UTC")
    scheduler.add_job(run_nft_cache_cleanup_job, "interval", hours=1, id="nft_cache_cleanup")
    scheduler.add_job(run_credit_expiry_job, "cron", hour=0, minute=5, id="credit_expiry")
    scheduler.start()
    log.info("Scheduler started: nft_cache_cleanup (hourly), credit_expiry (daily 00:05 UTC)")


@app.on_event("startup")
def startup():
    _log_integrations()
    try:
        Base.metadata.create_all(bind=engine)
        db = SessionLocal()
        try:
            seed_all(db)
        finally:
            db.close()
    except Exception as e:
        log.warning("Database startup failed (tables/seed skipped). Check DATABASE_URL and network. Error: %s", e)

    if settings.scheduler_enabled:
        _start_scheduler()


@app.on_event("shutdown")
def shutdown():
    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)


@app.get("/")
def root():
    return {"app": settings.app_name, "status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}
