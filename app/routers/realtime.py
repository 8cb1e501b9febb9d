"""Pusher channel authorization for private and presence subscriptions."""
import re
from fastapi import APIRouter, Depends, Form, HTTPException
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.models.booking import Booking
from app.models.cafe import CafeOrder
from app.models.user import User, UserRole
from app.services import realtime

router = APIRouter(prefix="/realtime", tags=["realtime"])

_RESOURCE_CHANNEL_RE = re.compile(r"^private-(booking|order)-(\d+)$")


def _owns_resource_channel(db: Session, channel: str, user: User) -> bool | None:
    """Ownership check for booking/order channels; None when the channel is neither."""
    match = _RESOURCE_CHANNEL_RE.match(channel)
    if not match:
        return None
    kind, resource_id = match.group(1), int(match.group(2))
    model = Booking if kind == "booking" else CafeOrder
    row = db.query(model.user_id).filter(model.id == resource_id).first()
    return bool(row and row[0] == user.id)


@router.post("/auth")
def authorize_channel(
    socket_id: str = Form(...),
    channel_name: str = Form(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Called by pusher-js with form fields socket_id and channel_name."""
    if not realtime.pusher_configured():
        raise HTTPException(status_code=503, detail="Realtime is not configured. Set PUSHER_* in .env.")
    if not channel_name.startswith(("private-", "presence-")):
        raise HTTPException(status_code=400, detail="Only private and presence channels require authorization")

    role = current_user.role.value
    allowed = realtime.can_subscribe(channel_name, current_user.id, role)
    if not allowed and current_user.role == UserRole.staff and channel_name.startswith("private-order-"):
        # Kitchen staff follow any order
        allowed = True
    if not allowed:
        allowed = bool(_owns_resource_channel(db, channel_name, current_user))
    if not allowed:
        raise HTTPException(status_code=403, detail="Not allowed to subscribe to this channel")

    user_info = {"name": current_user.full_name or current_user.email, "role": role}
    return realtime.authenticate_channel(channel_name, socket_id, current_user.id, user_info)
