"""
Notifications API - admin queue
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from prodtrack.core import get_db
from prodtrack.core.security import Principal, get_current_principal
from prodtrack.services import NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
async def list_notifications(
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return [NotificationService.to_dict(n) for n in NotificationService.list_latest(db, actor)]


@router.get("/unread-count")
async def unread_count(
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return {"count": NotificationService.unread_count(db, actor)}


@router.post("/read-all")
async def mark_all_read(
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return {"updated": NotificationService.mark_all_read(db, actor)}


@router.post("/{notification_id}/read")
async def mark_read(
    notification_id: int,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return NotificationService.to_dict(NotificationService.mark_read(db, actor, notification_id))


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    NotificationService.delete(db, actor, notification_id)
    return {"success": True}
