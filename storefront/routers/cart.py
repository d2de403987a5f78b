from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from .. import auth, models, schemas
from ..database import get_db

router = APIRouter(prefix="/cart", tags=["cart"])


async def cart_lines(db: AsyncSession, user_id: int):
    result = await db.execute(
        select(models.CartItem)
        .where(models.CartItem.user_id == user_id)
        .options(selectinload(models.CartItem.product))
        .order_by(models.CartItem.added_at, models.CartItem.id)
    )
    return result.scalars().all()


async def cart_count(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(select(func.count(models.CartItem.id)).where(models.CartItem.user_id == user_id))
    return result.scalar_one()


def line_out(line: models.CartItem) -> dict:
    product = line.product
    return {
        "product_id": line.product_id,
        "product_name": product.name,
        "price": product.price,
        "image": product.main_image,
        "quantity": line.quantity,
        "stock": product.stock,
        "color_name": line.color,
    }


@router.get("", response_model=schemas.CartOut)
async def view_cart(db: AsyncSession = Depends(get_db), current_user: models.User = Depends(auth.get_current_user)):
    items = [line_out(line) for line in await cart_lines(db, current_user.id) if line.product is not None]
    return {"items": items, "total": round(sum(i["price"] * i["quantity"] for i in items), 2)}


@router.get("/count")
async def view_cart_count(db: AsyncSession = Depends(get_db), current_user: models.User = Depends(auth.get_current_user)):
    return {"count": await cart_count(db, current_user.id)}


@router.post("/items", response_model=schemas.CartActionResult)
async def add_to_cart(
    item: schemas.CartItemAdd,
    db: AsyncSession = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
):
    product = await db.get(models.Product, item.product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    if item.color and not product.has_color(item.color):
        raise HTTPException(status_code=400, detail="Invalid color selected")

    # Check if item exists in cart
    res = await db.execute(select(models.CartItem).where(
        models.CartItem.user_id == current_user.id,
        models.CartItem.product_id == item.product_id,
        models.CartItem.color == item.color,
    ))
    existing_item = res.scalar_one_or_none()

    if existing_item:
        existing_item.quantity += item.quantity
    else:
        db.add(models.CartItem(
            user_id=current_user.id, product_id=item.product_id, color=item.color, quantity=item.quantity,
        ))
    await db.commit()

    return {
        "message": "Cart updated" if existing_item else "Added to cart",
        "cart_item_count": await cart_count(db, current_user.id),
    }


@router.patch("/items", response_model=schemas.CartActionResult)
async def update_cart_quantity(
    item: schemas.CartItemUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
):
    query = select(models.CartItem).where(
        models.CartItem.user_id == current_user.id,
        models.CartItem.product_id == item.product_id,
    )
    if item.color is not None:
        query = query.where(models.CartItem.color == item.color)
    lines = (await db.execute(query)).scalars().all()
    if not lines:
        raise HTTPException(status_code=404, detail="Item not in cart")

    if item.quantity == 0:
        for line in lines:
            await db.delete(line)
        message = "Item removed from cart"
    else:
        for line in lines:
            line.quantity = item.quantity
        message = "Cart updated"
    await db.commit()
    return {"message": message, "cart_item_count": await cart_count(db, current_user.id)}


@router.delete("/items/{product_id}", response_model=schemas.CartActionResult)
async def remove_from_cart(
    product_id: int,
    color: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
):
    stmt = delete(models.CartItem).where(
        models.CartItem.user_id == current_user.id,
        models.CartItem.product_id == product_id,
    )
    if color is not None:
        stmt = stmt.where(models.CartItem.color == color)
    await db.execute(stmt)
    await db.commit()
    return {"message": "Item removed from cart", "cart_item_count": await cart_count(db, current_user.id)}
