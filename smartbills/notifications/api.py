import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status

from smartbills.utils.timezone import parse_timestamp

from .attempt_log import AttemptLog
from .errors import AuthorizationError, NotFoundError, ValidationError
from .identity import get_requester_email
from .mailer import describe_error
from .metrics import notifications_cancelled_total, notifications_created_total
from .repository import NotificationStore, derive_send_at
from .schemas import (
    AttemptLogRead,
    CancelResult,
    NotificationCreate,
    NotificationCreated,
    NotificationRead,
    PreviewResult,
)
from .templates import render_reminder

logger = logging.getLogger(__name__)

router = APIRouter()


def get_store(request: Request) -> NotificationStore:
    return request.app.state.store


def get_attempt_log(request: Request) -> AttemptLog:
    return request.app.state.attempt_log


def _ensure_same_requester(requested: Optional[str], requester_email: str) -> str:
    if requested and requested.strip() != requester_email:
        raise HTTPException(status_code=403, detail="Email does not match the authenticated user")
    return requester_email


@router.post("", response_model=NotificationCreated, status_code=status.HTTP_201_CREATED)
def create_notification_endpoint(
    payload: NotificationCreate,
    store: NotificationStore = Depends(get_store),
    requester_email: str = Depends(get_requester_email),
):
    payload.email = _ensure_same_requester(payload.email, requester_email)
    try:
        n = store.create(payload)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    notifications_created_total.inc()
    return NotificationCreated(inserted_id=n.id, scheduled_for=n.send_at)


@router.get("", response_model=List[NotificationRead])
def list_notifications_endpoint(
    email: Optional[str] = None,
    store: NotificationStore = Depends(get_store),
    requester_email: str = Depends(get_requester_email),
):
    recipient = _ensure_same_requester(email, requester_email)
    return [NotificationRead.model_validate(n) for n in store.list_for(recipient)]


@router.post("/preview", response_model=PreviewResult)
def preview_notification_endpoint(
    payload: NotificationCreate,
    request: Request,
    requester_email: str = Depends(get_requester_email),
):
    """Send the reminder email once, right now, without persisting anything."""
    recipient = _ensure_same_requester(payload.email, requester_email)
    try:
        derive_send_at(payload.send_at, payload.due_date, request.app.state.clock.now())
        due_date = parse_timestamp(payload.due_date)
    except (ValidationError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    subject, html = render_reminder(
        title=payload.title,
        provider_name=payload.provider_name,
        amount=payload.amount,
        due_date=due_date,
        message=payload.message,
    )
    try:
        receipt = request.app.state.mailer.send(recipient, subject, html)
    except Exception as e:
        logger.error(f"POST /notifications/preview error: {e!r}")
        raise HTTPException(status_code=500, detail=f"Failed to send preview email: {describe_error(e)}")
    return PreviewResult(success=True, id=receipt)


@router.delete("/{notification_id}", response_model=CancelResult)
def cancel_notification_endpoint(
    notification_id: str,
    store: NotificationStore = Depends(get_store),
    requester_email: str = Depends(get_requester_email),
):
    try:
        store.cancel(notification_id, requester_email)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Notification not found")
    except AuthorizationError as e:
        raise HTTPException(status_code=403, detail=str(e))
    notifications_cancelled_total.inc()
    return CancelResult(success=True)


@router.get("/{notification_id}/attempts", response_model=List[AttemptLogRead])
def list_attempts_endpoint(
    notification_id: str,
    store: NotificationStore = Depends(get_store),
    attempt_log: AttemptLog = Depends(get_attempt_log),
    requester_email: str = Depends(get_requester_email),
):
    n = store.get(notification_id)
    if not n:
        raise HTTPException(status_code=404, detail="Notification not found")
    if n.recipient_email != requester_email:
        raise HTTPException(status_code=403, detail="Not allowed to view this notification")
    return [AttemptLogRead.model_validate(e) for e in attempt_log.list_for(notification_id)]
