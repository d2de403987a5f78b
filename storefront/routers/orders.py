import logging
import secrets
import time
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from starlette.concurrency import run_in_threadpool

from .. import auth, cache, emails, models, schemas, worker
from ..config import settings
from ..database import get_db
from .cart import cart_lines

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


def new_order_number() -> str:
    return f"ORD-{int(time.time() * 1000)}-{secrets.token_hex(2).upper()}"


def notify(db: AsyncSession, user_id: int, order: models.Order, message: str):
    db.add(models.Notification(user_id=user_id, order_id=order.id, message=message))


def confirmation_payload(order: models.Order, customer_email: str) -> dict:
    items = [
        {"product_name": i.product_name, "quantity": i.quantity, "price": i.unit_price, "color_name": i.color_name}
        for i in order.items
    ]
    return {
        "order_id": order.id,
        "order_number": order.order_number,
        "customer_name": order.customer_name or "Valued Customer",
        "customer_email": customer_email,
        "items": items,
        "subtotal": round(sum(i["price"] * i["quantity"] for i in items), 2),
        "total": order.total_amount,
        "shipping_address": order.shipping_address,
        "shipping_phone": order.shipping_phone,
        "order_date": order.created_at.strftime("%Y-%m-%d") if order.created_at else None,
        "estimated_delivery": emails.estimated_delivery(),
        "status": order.status,
    }


async def load_order(db: AsyncSession, order_id: int, with_user: bool = False):
    options = [selectinload(models.Order.items)]
    if with_user:
        options.append(selectinload(models.Order.user))
    result = await db.execute(
        select(models.Order).where(models.Order.id == order_id).options(*options)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_visible_order(db: AsyncSession, order_id: int, user: models.User) -> models.Order:
    order = await load_order(db, order_id, with_user=True)
    # Other users' orders are reported as missing, not forbidden
    if not order or (order.user_id != user.id and user.role != models.Role.ADMIN.value):
        raise HTTPException(status_code=404, detail="Order not found")
    return order


async def reserve_stock(db: AsyncSession, product: models.Product, quantity: int):
    if product.stock < quantity:
        raise HTTPException(status_code=400, detail=f"Out of stock: {product.name}")

    # Optimistic Locking
    stmt = (
        update(models.Product)
        .where(models.Product.id == product.id)
        .where(models.Product.version == product.version)
        .values(
            stock=models.Product.stock - quantity,
            ordered=models.Product.ordered + quantity,
            version=models.Product.version + 1,
        )
        .execution_options(synchronize_session=False)
    )
    update_result = await db.execute(stmt)
    if update_result.rowcount == 0:
        raise HTTPException(status_code=409, detail=f"Stock changed for {product.name}. Please retry.")
    await db.refresh(product)


@router.post("", response_model=schemas.OrderOut, status_code=201)
async def create_order(
    body: schemas.OrderCreate,
    db: AsyncSession = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
):
    buy_now = body.items is not None
    if buy_now:
        lines = [(i.product_id, i.quantity, i.color) for i in body.items]
    else:
        lines = [(c.product_id, c.quantity, c.color) for c in await cart_lines(db, current_user.id)]
    if not lines:
        raise HTTPException(status_code=400, detail="Cart is empty")

    customer_name = f"{body.first_name} {body.last_name}".strip()
    try:
        new_order = models.Order(
            user_id=current_user.id,
            order_number=new_order_number(),
            status=models.OrderStatus.PENDING.value,
            payment_method=body.payment_method.value,
            shipping_address=body.address,
            shipping_phone=body.phone,
            customer_name=customer_name,
            email=body.email,
            total_amount=0,
        )
        db.add(new_order)
        await db.flush()

        total = 0.0
        for product_id, quantity, color in lines:
            product = await db.get(models.Product, product_id)
            if not product:
                raise HTTPException(status_code=404, detail=f"Product {product_id} not found")
            if color and not product.has_color(color):
                raise HTTPException(status_code=400, detail=f"Invalid color selected for {product.name}")

            await reserve_stock(db, product, quantity)

            color_image = next((c.get("image") for c in product.colors or [] if c.get("name") == color), None)
            db.add(models.OrderItem(
                order_id=new_order.id,
                product_id=product.id,
                product_name=product.name,
                color_name=color or "",
                quantity=quantity,
                unit_price=product.price,
                image=color_image or product.main_image,
            ))
            total += product.price * quantity

        new_order.total_amount = round(total, 2)

        if not buy_now:
            await db.execute(delete(models.CartItem).where(models.CartItem.user_id == current_user.id))
        notify(db, current_user.id, new_order,
               f"Your order #{new_order.order_number} has been placed successfully.")

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    order = await load_order(db, new_order.id)
    logger.info("Order %s placed by %s (%d items, total %.2f)",
                order.order_number, current_user.email, len(order.items), order.total_amount)

    cache.invalidate_products()
    worker.enqueue(worker.send_order_confirmation_email, confirmation_payload(order, body.email))
    return order


@router.get("", response_model=List[schemas.OrderOut])
async def my_orders(db: AsyncSession = Depends(get_db), current_user: models.User = Depends(auth.get_current_user)):
    result = await db.execute(
        select(models.Order)
        .where(models.Order.user_id == current_user.id)
        .options(selectinload(models.Order.items))
        .order_by(models.Order.created_at.desc(), models.Order.id.desc())
    )
    return result.scalars().all()


@router.get("/{order_id}", response_model=schemas.OrderOut)
async def order_detail(order_id: int, db: AsyncSession = Depends(get_db),
                       current_user: models.User = Depends(auth.get_current_user)):
    return await get_visible_order(db, order_id, current_user)


@router.post("/{order_id}/resend-email", response_model=schemas.Message)
async def resend_order_email(order_id: int, db: AsyncSession = Depends(get_db),
                             current_user: models.User = Depends(auth.get_current_user)):
    order = await get_visible_order(db, order_id, current_user)
    if order.resend_email_count >= settings.MAX_EMAIL_RESENDS:
        raise HTTPException(status_code=400,
                            detail="You have reached the maximum number of resends for this order.")

    customer_email = order.email or (order.user.email if order.user else None)
    if not customer_email:
        raise HTTPException(status_code=400, detail="No email found for this order.")

    success, error = await run_in_threadpool(emails.send_order_confirmation,
                                             confirmation_payload(order, customer_email))
    if not success:
        logger.error("Resend for order %s failed: %s", order.order_number, error)
        raise HTTPException(status_code=502, detail=error or "Failed to send email")

    order.resend_email_count += 1
    await db.commit()
    return {"message": f"Confirmation email sent to {customer_email}"}
