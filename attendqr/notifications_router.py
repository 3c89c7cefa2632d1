from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from attendqr.dependencies import get_current_user, get_db
from attendqr.models import User
from attendqr.notifications import (
    get_owned_notification,
    list_notifications,
    mark_all_read,
    notification_payload,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _owned_or_404(db, user, notification_id):
    notification = get_owned_notification(db, user, notification_id)
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification


@router.get("")
async def notifications(
    unread: bool = False,
    limit: int = 50,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return [notification_payload(n) for n in list_notifications(db, user, unread_only=unread, limit=limit)]


@router.post("/read-all")
async def read_all(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return {"updated": mark_all_read(db, user)}


@router.post("/{notification_id}/read")
async def read_one(notification_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    notification = _owned_or_404(db, user, notification_id)
    notification.read = True
    db.commit()
    return notification_payload(notification)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_one(notification_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    db.delete(_owned_or_404(db, user, notification_id))
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
