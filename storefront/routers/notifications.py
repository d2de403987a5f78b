from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from .. import auth, models, schemas
from ..database import get_db

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=List[schemas.NotificationOut])
async def list_notifications(db: AsyncSession = Depends(get_db),
                             current_user: models.User = Depends(auth.get_current_user)):
    result = await db.execute(
        select(models.Notification)
        .where(models.Notification.user_id == current_user.id)
        .order_by(models.Notification.created_at.desc(), models.Notification.id.desc())
    )
    return result.scalars().all()


@router.get("/unread-count")
async def unread_count(db: AsyncSession = Depends(get_db), current_user: models.User = Depends(auth.get_current_user)):
    result = await db.execute(
        select(func.count(models.Notification.id))
        .where(models.Notification.user_id == current_user.id, models.Notification.read.is_(False))
    )
    return {"count": result.scalar_one()}


@router.post("/{notification_id}/read", response_model=schemas.NotificationOut)
async def mark_read(notification_id: int, db: AsyncSession = Depends(get_db),
                    current_user: models.User = Depends(auth.get_current_user)):
    notification = await db.get(models.Notification, notification_id)
    if not notification or notification.user_id != current_user.id:
        raise HTTPException(status_code=404, detail="Notification not found")
    notification.read = True
    await db.commit()
    return notification


@router.post("/read-all", response_model=schemas.Message)
async def mark_all_read(db: AsyncSession = Depends(get_db), current_user: models.User = Depends(auth.get_current_user)):
    result = await db.execute(
        update(models.Notification)
        .where(models.Notification.user_id == current_user.id, models.Notification.read.is_(False))
        .values(read=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return {"message": f"{result.rowcount} notification(s) marked as read"}
