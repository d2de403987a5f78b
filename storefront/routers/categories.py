from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from .. import activity, auth, models, schemas
from ..database import get_db

router = APIRouter(prefix="/categories", tags=["categories"])


async def get_category_or_404(db: AsyncSession, category_id: int) -> models.Category:
    category = await db.get(models.Category, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


async def product_count(db: AsyncSession, category_id: int) -> int:
    result = await db.execute(
        select(func.count(models.Product.id)).where(models.Product.category_id == category_id)
    )
    return result.scalar_one()


async def ensure_unique_name(db: AsyncSession, name: str, exclude_id: int = None):
    query = select(models.Category).where(func.lower(models.Category.name) == name.lower())
    if exclude_id is not None:
        query = query.where(models.Category.id != exclude_id)
    result = await db.execute(query)
    if result.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="Category name already exists")


@router.get("", response_model=List[schemas.CategoryOut])
async def list_categories(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(models.Category).order_by(models.Category.name))
    return result.scalars().all()


@router.get("/{category_id}", response_model=schemas.CategoryOut)
async def get_category(category_id: int, db: AsyncSession = Depends(get_db)):
    return await get_category_or_404(db, category_id)


@router.get("/{category_id}/products", response_model=List[schemas.ProductOut])
async def category_products(category_id: int, db: AsyncSession = Depends(get_db)):
    await get_category_or_404(db, category_id)
    result = await db.execute(
        select(models.Product)
        .where(models.Product.category_id == category_id)
        .order_by(models.Product.likes.desc(), models.Product.id.desc())
    )
    return result.scalars().all()


@router.get("/{category_id}/product-count")
async def category_product_count(category_id: int, db: AsyncSession = Depends(get_db)):
    await get_category_or_404(db, category_id)
    return {"category_id": category_id, "count": await product_count(db, category_id)}


# --- ADMIN ---
@router.post("", response_model=schemas.CategoryOut, status_code=201)
async def create_category(
    category: schemas.CategoryCreate,
    db: AsyncSession = Depends(get_db),
    admin: models.User = Depends(auth.require_admin),
):
    await ensure_unique_name(db, category.name)
    new_category = models.Category(**category.model_dump())
    db.add(new_category)
    await db.flush()
    activity.record(db, admin, "create", "category", new_category.id, {"name": new_category.name})
    await db.commit()
    await db.refresh(new_category)
    return new_category


@router.put("/{category_id}", response_model=schemas.CategoryOut)
async def update_category(
    category_id: int,
    updates: schemas.CategoryUpdate,
    db: AsyncSession = Depends(get_db),
    admin: models.User = Depends(auth.require_admin),
):
    category = await get_category_or_404(db, category_id)
    changes = updates.model_dump(exclude_unset=True)
    if changes.get("name"):
        await ensure_unique_name(db, changes["name"], exclude_id=category_id)
    for field, value in changes.items():
        if field == "name" and not value:
            continue
        setattr(category, field, value)
    activity.record(db, admin, "update", "category", category_id, {"fields": sorted(changes)})
    await db.commit()
    await db.refresh(category)
    return category


@router.delete("/{category_id}", response_model=schemas.Message)
async def delete_category(
    category_id: int,
    db: AsyncSession = Depends(get_db),
    admin: models.User = Depends(auth.require_admin),
):
    category = await get_category_or_404(db, category_id)
    count = await product_count(db, category_id)
    if count > 0:
        raise HTTPException(
            status_code=409,
            detail=f"Cannot delete category: {count} product(s) are using this category. "
                   "Please move or delete the products first.",
        )
    await db.delete(category)
    activity.record(db, admin, "delete", "category", category_id, {"name": category.name})
    await db.commit()
    return {"message": "Category deleted"}
