import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import urlencode

import httpx
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from . import models, schemas
from .config import settings
from .database import get_db

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/login")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def token_for(user: models.User) -> dict:
    return {"access_token": create_access_token({"sub": user.email, "role": user.role}), "token_type": "bearer"}


def role_for_email(email: str) -> str:
    if email.lower() in settings.ADMIN_EMAILS:
        return models.Role.ADMIN.value
    return models.Role.USER.value


async def get_current_user(token: str = Depends(oauth2_scheme), db: AsyncSession = Depends(get_db)) -> models.User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
        token_data = schemas.TokenData(email=payload.get("sub"), role=payload.get("role"))
    except JWTError:
        raise credentials_exception
    if token_data.email is None:
        raise credentials_exception

    result = await db.execute(select(models.User).where(models.User.email == token_data.email))
    user = result.scalar_one_or_none()
    if user is None:
        raise credentials_exception
    return user


async def require_admin(current_user: models.User = Depends(get_current_user)) -> models.User:
    # Role comes from the database row, a stale token cannot keep admin rights
    if current_user.role != models.Role.ADMIN.value:
        raise HTTPException(status_code=403, detail="Admin access required")
    return current_user


# --- GOOGLE SIGN-IN ---
def google_authorization_url(state: Optional[str] = None) -> str:
    params = {
        "client_id": settings.GOOGLE_CLIENT_ID,
        "redirect_uri": settings.GOOGLE_REDIRECT_URI,
        "response_type": "code",
        "scope": "openid email profile",
        "access_type": "online",
        "prompt": "select_account",
    }
    if state:
        params["state"] = state
    return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"


async def fetch_google_profile(code: str) -> schemas.GoogleProfile:
    """Exchange an authorization code for the signed-in Google profile."""
    async with httpx.AsyncClient(timeout=10) as client:
        token_res = await client.post(GOOGLE_TOKEN_URL, data={
            "code": code,
            "client_id": settings.GOOGLE_CLIENT_ID,
            "client_secret": settings.GOOGLE_CLIENT_SECRET,
            "redirect_uri": settings.GOOGLE_REDIRECT_URI,
            "grant_type": "authorization_code",
        })
        token_res.raise_for_status()
        access_token = token_res.json()["access_token"]

        profile_res = await client.get(GOOGLE_USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"})
        profile_res.raise_for_status()
        return schemas.GoogleProfile(**profile_res.json())


async def upsert_google_user(db: AsyncSession, profile: schemas.GoogleProfile) -> models.User:
    email = profile.email.lower()
    result = await db.execute(select(models.User).where(models.User.email == email))
    user = result.scalar_one_or_none()

    if user is None:
        user = models.User(
            email=email,
            name=profile.name or email.split("@")[0],
            image=profile.picture,
            google_id=profile.sub,
            role=role_for_email(email),
        )
        db.add(user)
        logger.info("Created user %s from Google sign-in", email)
    else:
        # Keep the profile in sync with the provider
        user.name = profile.name or user.name
        user.image = profile.picture
        user.google_id = profile.sub
        if user.role != models.Role.ADMIN.value and role_for_email(email) == models.Role.ADMIN.value:
            # Drop any password set before ownership of the address was proven
            user.role = models.Role.ADMIN.value
            user.hashed_password = None
            logger.info("Promoted %s to admin after Google sign-in", email)

    await db.commit()
    await db.refresh(user)
    return user
