"""
Messages API: post a ride or direct message, mark read, unread count.

Posting queues the matching email notification (throttled per ride / per sender).
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.orm import Session

from grouprides.api.deps import current_user_id
from grouprides.core.errors import GroupRideError, domain_error_to_http
from grouprides.db.session import get_db
from grouprides.services import notifications
from grouprides.services.message_service import mark_read, post_direct_message, post_ride_message, unread_count

router = APIRouter()
logger = logging.getLogger(__name__)


class PostMessageBody(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)
    ride_id: int | None = None
    recipient_ids: list[int] = Field(default_factory=list, max_length=100)
    label: str | None = Field(None, max_length=64)

    @model_validator(mode="after")
    def ride_or_recipients(self) -> "PostMessageBody":
        if self.ride_id is None and not self.recipient_ids:
            raise ValueError("Provide ride_id or recipient_ids")
        return self


@router.post("/messages", status_code=201)
def post_message(
    body: PostMessageBody,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
) -> dict[str, Any]:
    try:
        if body.ride_id is not None:
            msg, event = post_ride_message(db, user_id, body.ride_id, body.content)
            notifications.queue_ride_message_notifications(event)
        else:
            msg, event = post_direct_message(db, user_id, body.recipient_ids, body.content, body.label)
            notifications.queue_direct_message_notifications(event)
    except GroupRideError as e:
        raise domain_error_to_http(e)
    return {"success": True, "id": msg.id, "recipient_count": len(msg.recipients)}


@router.post("/messages/{message_id}/read")
def read_message(
    message_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
) -> dict[str, Any]:
    if not mark_read(db, message_id, user_id):
        return {"ok": False, "error": "not_found"}
    return {"ok": True, "id": message_id}


@router.get("/messages/unread-count")
def get_unread_count(
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
) -> dict[str, int]:
    return {"count": unread_count(db, user_id)}
