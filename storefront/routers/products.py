import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from sqlalchemy import delete, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from .. import activity, auth, cache, models, schemas, storage
from ..database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"])

SORTS = {
    "likes": (models.Product.likes.desc(), models.Product.id.desc()),
    "price_asc": (models.Product.price.asc(), models.Product.id.asc()),
    "price_desc": (models.Product.price.desc(), models.Product.id.asc()),
    "newest": (models.Product.created_at.desc(), models.Product.id.desc()),
}


async def get_product_or_404(db: AsyncSession, product_id: int) -> models.Product:
    product = await db.get(models.Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


async def ensure_category(db: AsyncSession, category_id: int):
    if not await db.get(models.Category, category_id):
        raise HTTPException(status_code=400, detail="Category does not exist")


@router.get("", response_model=List[schemas.ProductOut])
async def list_products(
    q: Optional[str] = None,
    category_id: Optional[int] = None,
    featured: Optional[bool] = None,
    sort: str = Query("likes", pattern="^(likes|price_asc|price_desc|newest)$"),
    db: AsyncSession = Depends(get_db),
):
    # Only the plain storefront listing is cached
    cacheable = q is None and category_id is None and featured is None and sort == "likes"
    if cacheable:
        cached = cache.get_json(cache.PRODUCTS_LIST_KEY)
        if cached is not None:
            return cached

    query = select(models.Product)
    if category_id is not None:
        query = query.where(models.Product.category_id == category_id)
    if featured is not None:
        query = query.where(models.Product.featured == featured)
    if q:
        pattern = f"%{q.strip()}%"
        query = query.where(or_(models.Product.name.ilike(pattern), models.Product.description.ilike(pattern)))
    query = query.order_by(*SORTS[sort])

    result = await db.execute(query)
    products = result.scalars().all()

    if cacheable:
        cache.set_json(cache.PRODUCTS_LIST_KEY, [schemas.ProductOut.model_validate(p) for p in products])
    return products


@router.get("/{product_id}", response_model=schemas.ProductOut)
async def get_product(product_id: int, db: AsyncSession = Depends(get_db)):
    return await get_product_or_404(db, product_id)


# --- ADMIN ---
@router.post("", response_model=schemas.ProductOut, status_code=201)
async def create_product(
    product: schemas.ProductCreate,
    db: AsyncSession = Depends(get_db),
    admin: models.User = Depends(auth.require_admin),
):
    await ensure_category(db, product.category_id)
    new_product = models.Product(**product.model_dump())
    db.add(new_product)
    await db.flush()
    activity.record(db, admin, "create", "product", new_product.id, {"name": new_product.name})
    await db.commit()
    await db.refresh(new_product)
    cache.invalidate_products()
    logger.info("Product %s created by %s", new_product.id, admin.email)
    return new_product


@router.put("/{product_id}", response_model=schemas.ProductOut)
async def update_product(
    product_id: int,
    updates: schemas.ProductUpdate,
    db: AsyncSession = Depends(get_db),
    admin: models.User = Depends(auth.require_admin),
):
    product = await get_product_or_404(db, product_id)
    changes = updates.model_dump(exclude_none=True)
    if "category_id" in changes:
        await ensure_category(db, changes["category_id"])
    for field, value in changes.items():
        setattr(product, field, value)
    product.version += 1
    activity.record(db, admin, "update", "product", product.id, {"fields": sorted(changes)})
    await db.commit()
    await db.refresh(product)
    cache.invalidate_products()
    return product


@router.delete("/{product_id}", response_model=schemas.Message)
async def delete_product(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    admin: models.User = Depends(auth.require_admin),
):
    product = await get_product_or_404(db, product_id)
    await db.execute(delete(models.CartItem).where(models.CartItem.product_id == product_id))
    await db.execute(delete(models.Favorite).where(models.Favorite.product_id == product_id))
    # Order items keep their snapshot, only the link goes
    await db.execute(update(models.OrderItem).where(models.OrderItem.product_id == product_id).values(product_id=None))
    await db.delete(product)
    activity.record(db, admin, "delete", "product", product_id, {"name": product.name})
    await db.commit()
    cache.invalidate_products()
    return {"message": "Product deleted"}


@router.post("/images", response_model=schemas.UploadedImages, status_code=201)
async def upload_images(
    files: List[UploadFile] = File(...),
    folder: str = Form(""),
    admin: models.User = Depends(auth.require_admin),
):
    if len(files) < 1:
        raise HTTPException(status_code=400, detail="At least one product image is required.")
    if len(files) > 4:
        raise HTTPException(status_code=400, detail="Maximum 4 product images allowed.")
    for f in files:
        if f.content_type not in storage.ALLOWED_CONTENT_TYPES:
            raise HTTPException(status_code=400, detail=f"Unsupported image type: {f.filename}")
    urls = [await storage.save_image(f, folder) for f in files]
    return {"urls": urls}
