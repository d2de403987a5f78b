from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from .. import auth, cache, models, schemas
from ..database import get_db

router = APIRouter(prefix="/favorites", tags=["favorites"])


async def find_favorite(db: AsyncSession, user_id: int, product_id: int):
    result = await db.execute(select(models.Favorite).where(
        models.Favorite.user_id == user_id, models.Favorite.product_id == product_id,
    ))
    return result.scalar_one_or_none()


async def change_likes(db: AsyncSession, product_id: int, delta: int) -> int:
    """Adjust the like counter in one UPDATE; it never goes below zero."""
    stmt = update(models.Product).where(models.Product.id == product_id)
    if delta < 0:
        stmt = stmt.where(models.Product.likes > 0)
    await db.execute(stmt.values(likes=models.Product.likes + delta).execution_options(synchronize_session=False))
    result = await db.execute(select(models.Product.likes).where(models.Product.id == product_id))
    return result.scalar_one_or_none() or 0


async def add_favorite(db: AsyncSession, user: models.User, product_id: int) -> int:
    db.add(models.Favorite(user_id=user.id, product_id=product_id))
    likes = await change_likes(db, product_id, 1)
    await db.commit()
    cache.invalidate_products()
    return likes


async def remove_favorite(db: AsyncSession, favorite: models.Favorite) -> int:
    product_id = favorite.product_id
    await db.delete(favorite)
    likes = await change_likes(db, product_id, -1)
    await db.commit()
    cache.invalidate_products()
    return likes


@router.get("", response_model=List[schemas.FavoriteOut])
async def list_favorites(db: AsyncSession = Depends(get_db), current_user: models.User = Depends(auth.get_current_user)):
    result = await db.execute(
        select(models.Favorite)
        .where(models.Favorite.user_id == current_user.id)
        .options(selectinload(models.Favorite.product))
        .order_by(models.Favorite.added_at.desc(), models.Favorite.id.desc())
    )
    return [
        {"product_id": fav.product_id, "added_at": fav.added_at, "product": fav.product}
        for fav in result.scalars().all() if fav.product is not None
    ]


@router.get("/count")
async def favorites_count(db: AsyncSession = Depends(get_db), current_user: models.User = Depends(auth.get_current_user)):
    result = await db.execute(select(func.count(models.Favorite.id)).where(models.Favorite.user_id == current_user.id))
    return {"count": result.scalar_one()}


@router.post("/toggle", response_model=schemas.FavoriteToggleResult)
async def toggle_favorite(
    body: schemas.FavoriteToggle,
    db: AsyncSession = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
):
    if not await db.get(models.Product, body.product_id):
        raise HTTPException(status_code=404, detail="Product not found")

    favorite = await find_favorite(db, current_user.id, body.product_id)
    if favorite:
        likes = await remove_favorite(db, favorite)
        return {"is_favorite": False, "likes": likes, "message": "Removed from favorites"}
    likes = await add_favorite(db, current_user, body.product_id)
    return {"is_favorite": True, "likes": likes, "message": "Added to favorites"}


@router.put("/{product_id}", response_model=schemas.FavoriteToggleResult)
async def add_to_favorites(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
):
    product = await db.get(models.Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    if await find_favorite(db, current_user.id, product_id):
        return {"is_favorite": True, "likes": product.likes, "message": "Already in favorites"}
    likes = await add_favorite(db, current_user, product_id)
    return {"is_favorite": True, "likes": likes, "message": "Added to favorites"}


@router.delete("/{product_id}", response_model=schemas.FavoriteToggleResult)
async def remove_from_favorites(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
):
    favorite = await find_favorite(db, current_user.id, product_id)
    if not favorite:
        product = await db.get(models.Product, product_id)
        return {"is_favorite": False, "likes": product.likes if product else 0, "message": "Not in favorites"}
    likes = await remove_favorite(db, favorite)
    return {"is_favorite": False, "likes": likes, "message": "Removed from favorites"}
