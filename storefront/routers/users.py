import csv
import io
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from .. import auth, models, schemas
from ..database import get_db

router = APIRouter(tags=["users"])

CSV_HEADERS = ["ID", "Name", "Email", "Phone", "Address", "Created At",
               "Orders Count", "Favorites Count", "Cart Items Count"]


async def counts_by_user(db: AsyncSession, model, user_ids=None) -> dict:
    query = select(model.user_id, func.count(model.id)).group_by(model.user_id)
    if user_ids is not None:
        query = query.where(model.user_id.in_(user_ids))
    result = await db.execute(query)
    return dict(result.all())


async def customers(db: AsyncSession, q: Optional[str] = None):
    query = select(models.User).where(models.User.role == models.Role.USER.value)
    if q:
        pattern = f"%{q.strip()}%"
        query = query.where(or_(models.User.name.ilike(pattern), models.User.email.ilike(pattern)))
    result = await db.execute(query.order_by(models.User.created_at.desc(), models.User.id.desc()))
    return result.scalars().all()


def users_csv(users, orders: dict, favorites: dict, cart: dict) -> str:
    buffer = io.StringIO()
    # Excel reads the delimiter hint from the first line
    buffer.write("sep=,\n")
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for user in users:
        writer.writerow([
            user.id,
            user.name or "Anonymous User",
            user.email,
            user.phone or "Not provided",
            user.address or "Not provided",
            user.created_at.strftime("%Y-%m-%d") if user.created_at else "",
            orders.get(user.id, 0),
            favorites.get(user.id, 0),
            cart.get(user.id, 0),
        ])
    return "\ufeff" + buffer.getvalue()


# --- PROFILE ---
@router.get("/profile", response_model=schemas.UserOut)
async def get_profile(current_user: models.User = Depends(auth.get_current_user)):
    return current_user


@router.put("/profile", response_model=schemas.UserOut)
async def update_profile(updates: schemas.ProfileUpdate, db: AsyncSession = Depends(get_db),
                         current_user: models.User = Depends(auth.get_current_user)):
    for field, value in updates.model_dump(exclude_unset=True).items():
        if field == "name" and not value:
            continue
        setattr(current_user, field, value)
    await db.commit()
    await db.refresh(current_user)
    return current_user


# --- ADMIN ---
@router.get("/admin/users", response_model=List[schemas.UserOut])
async def admin_list_users(q: Optional[str] = None, db: AsyncSession = Depends(get_db),
                           admin: models.User = Depends(auth.require_admin)):
    return await customers(db, q)


@router.get("/admin/users/export")
async def export_users(db: AsyncSession = Depends(get_db), admin: models.User = Depends(auth.require_admin)):
    users = await customers(db)
    content = users_csv(
        users,
        await counts_by_user(db, models.Order),
        await counts_by_user(db, models.Favorite),
        await counts_by_user(db, models.CartItem),
    )
    filename = f"users-{datetime.now(timezone.utc).strftime('%Y-%m-%d')}.csv"
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/admin/users/{user_id}", response_model=schemas.UserDetails)
async def admin_user_details(user_id: int, db: AsyncSession = Depends(get_db),
                             admin: models.User = Depends(auth.require_admin)):
    user = await db.get(models.User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    ids = [user_id]
    return {
        **schemas.UserOut.model_validate(user).model_dump(),
        "orders_count": (await counts_by_user(db, models.Order, ids)).get(user_id, 0),
        "favorites_count": (await counts_by_user(db, models.Favorite, ids)).get(user_id, 0),
        "cart_items_count": (await counts_by_user(db, models.CartItem, ids)).get(user_id, 0),
    }
