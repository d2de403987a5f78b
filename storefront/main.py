import logging
from pathlib import Path
from typing import Optional

import httpx
from fastapi import FastAPI, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from fastapi.staticfiles import StaticFiles
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

# Local imports
from .config import settings
from .database import engine, Base, get_db
from . import models, schemas, auth
from .routers import admin, cart, categories, contact, favorites, notifications, orders, products, users

logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Storefront API")

Path(settings.MEDIA_ROOT).mkdir(parents=True, exist_ok=True)
app.mount(settings.MEDIA_URL, StaticFiles(directory=settings.MEDIA_ROOT), name="media")

for router in (products.router, categories.router, cart.router, favorites.router, orders.router,
               notifications.router, users.router, admin.router, contact.router):
    app.include_router(router)


@app.on_event("startup")
async def startup():
    async with engine.begin() as conn:
        # Schema changes beyond new tables need a migration tool
        await conn.run_sync(Base.metadata.create_all)


@app.get("/")
async def root():
    return {"message": "Storefront API running"}

# --- AUTH ---
@app.post("/register", response_model=schemas.Token)
async def register(user: schemas.UserCreate, db: AsyncSession = Depends(get_db)):
    email = user.email.lower()
    result = await db.execute(select(models.User).where(models.User.email == email))
    if result.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="Email already registered")
    new_user = models.User(
        email=email,
        name=user.name,
        hashed_password=auth.get_password_hash(user.password),
        # Admin rights only come through a verified Google sign-in
        role=models.Role.USER.value,
    )
    db.add(new_user)
    await db.commit()
    await db.refresh(new_user)
    logger.info("Registered user %s", email)
    return auth.token_for(new_user)

@app.post("/login", response_model=schemas.Token)
async def login(user_credentials: OAuth2PasswordRequestForm = Depends(), db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(models.User).where(models.User.email == user_credentials.username.lower()))
    user = result.scalar_one_or_none()
    if not user or not auth.verify_password(user_credentials.password, user.hashed_password):
        raise HTTPException(status_code=403, detail="Invalid Credentials")
    return auth.token_for(user)

@app.get("/auth/google/login")
async def google_login(state: Optional[str] = None):
    if not settings.GOOGLE_CLIENT_ID:
        raise HTTPException(status_code=503, detail="Google sign-in is not configured")
    return {"authorization_url": auth.google_authorization_url(state)}

@app.get("/auth/google/callback", response_model=schemas.Token)
async def google_callback(code: str, db: AsyncSession = Depends(get_db)):
    try:
        profile = await auth.fetch_google_profile(code)
    except (httpx.HTTPError, KeyError, ValueError) as e:
        logger.error("Google sign-in failed: %s", e)
        raise HTTPException(status_code=400, detail="Google sign-in failed")
    if not profile.email_verified:
        raise HTTPException(status_code=400, detail="Google account email is not verified")
    user = await auth.upsert_google_user(db, profile)
    return auth.token_for(user)
