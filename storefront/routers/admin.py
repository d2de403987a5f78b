import logging
from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from starlette.concurrency import run_in_threadpool

from .. import activity, auth, emails, models, schemas, worker
from ..config import settings
from ..database import get_db
from .orders import load_order, notify

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def _month_key(moment):
    return (moment.year, moment.month)


def _previous_month(now):
    return (now.year - 1, 12) if now.month == 1 else (now.year, now.month - 1)


def growth(current, previous) -> float:
    if not previous:
        return 0.0
    return round((current - previous) / previous * 100, 1)


def compute_stats(products, total_categories: int, orders, users, now=None) -> dict:
    now = now or datetime.now(timezone.utc)
    this_month, last_month = _month_key(now), _previous_month(now)

    def in_month(rows, key):
        return [r for r in rows if r.created_at and _month_key(r.created_at) == key]

    monthly_revenue = sum(o.total_amount for o in in_month(orders, this_month))
    last_month_revenue = sum(o.total_amount for o in in_month(orders, last_month))

    return {
        "total_products": len(products),
        "total_categories": total_categories,
        "total_orders": len(orders),
        "total_users": len(users),
        "total_revenue": round(sum(o.total_amount for o in orders), 2),
        "monthly_revenue": round(monthly_revenue, 2),
        "last_month_revenue": round(last_month_revenue, 2),
        "monthly_growth": growth(monthly_revenue, last_month_revenue),
        "product_growth": growth(len(products), len(in_month(products, last_month))),
        "order_growth": growth(len(orders), len(in_month(orders, last_month))),
        "user_growth": growth(len(users), len(in_month(users, last_month))),
        "low_stock_products": [p for p in products if p.stock < settings.LOW_STOCK_THRESHOLD],
    }


@router.get("/dashboard", response_model=schemas.DashboardStats)
async def dashboard(db: AsyncSession = Depends(get_db), admin: models.User = Depends(auth.require_admin)):
    products = (await db.execute(select(models.Product))).scalars().all()
    orders = (await db.execute(select(models.Order))).scalars().all()
    users = (await db.execute(
        select(models.User).where(models.User.role == models.Role.USER.value)
    )).scalars().all()
    total_categories = (await db.execute(select(func.count(models.Category.id)))).scalar_one()
    return compute_stats(products, total_categories, orders, users)


@router.get("/activity", response_model=List[schemas.ActivityLogOut])
async def activity_logs(limit: int = 100, db: AsyncSession = Depends(get_db),
                        admin: models.User = Depends(auth.require_admin)):
    result = await db.execute(
        select(models.ActivityLog)
        .order_by(models.ActivityLog.created_at.desc(), models.ActivityLog.id.desc())
        .limit(min(max(limit, 1), 500))
    )
    return result.scalars().all()


@router.post("/test-email", response_model=schemas.Message)
async def send_test_email(body: schemas.EmailCheckRequest, admin: models.User = Depends(auth.require_admin)):
    html = emails.render_status_update("ORD-TEST", models.OrderStatus.PROCESSING.value)
    success, error = await run_in_threadpool(emails.send_email, body.email, "Test Email", html)
    if not success:
        raise HTTPException(status_code=502, detail=error or "Failed to send email")
    return {"message": f"Test email sent to {body.email}"}


# --- ORDERS ---
@router.get("/orders", response_model=List[schemas.AdminOrderOut])
async def admin_orders(db: AsyncSession = Depends(get_db), admin: models.User = Depends(auth.require_admin)):
    result = await db.execute(
        select(models.Order)
        .options(selectinload(models.Order.items), selectinload(models.Order.user))
        .order_by(models.Order.created_at.desc(), models.Order.id.desc())
    )
    return result.scalars().all()


@router.put("/orders/{order_id}/status", response_model=schemas.AdminOrderOut)
async def update_order_status(
    order_id: int,
    body: schemas.OrderStatusUpdate,
    db: AsyncSession = Depends(get_db),
    admin: models.User = Depends(auth.require_admin),
):
    order = await load_order(db, order_id, with_user=True)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")

    previous = order.status
    order.status = body.status.value
    notify(db, order.user_id, order,
           f"Your order #{order.order_number} status has been updated to {order.status}.")
    activity.record(db, admin, "update_status", "order", order.id, {"from": previous, "to": order.status})
    await db.commit()

    recipient = order.user.email if order.user else order.email
    if recipient:
        # Delivery problems never undo the status change
        worker.enqueue(worker.send_order_status_email, recipient, order.order_number, order.status,
                       body.tracking_number, order.id)
    logger.info("Order %s moved from %s to %s", order.order_number, previous, order.status)
    return await load_order(db, order_id, with_user=True)


@router.delete("/orders/{order_id}", response_model=schemas.Message)
async def delete_order(order_id: int, db: AsyncSession = Depends(get_db),
                       admin: models.User = Depends(auth.require_admin)):
    order = await load_order(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    await db.delete(order)
    activity.record(db, admin, "delete", "order", order_id, {"order_number": order.order_number})
    await db.commit()
    return {"message": "Order deleted"}
