"""FastAPI dependencies for storage access and the caller identity."""

import os
from datetime import datetime, timedelta
from typing import Optional
from fastapi import Request, HTTPException, Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from teahouse.db.models import Profile
from teahouse.db.staff_utils import caller_for
from teahouse.policy import Caller
from teahouse.storage import Storage


def get_storage(request: Request) -> Storage:
    """Ledger store attached to the running app."""
    return request.app.state.storage


# ---------- Auth helpers ----------

SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-key")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "480"))

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def hash_password(password: str) -> str:
    """Hash a plain text password."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def get_current_caller(
    storage: Storage = Depends(get_storage),
    token: str = Depends(oauth2_scheme)
) -> Caller:
    """
    Resolve the bearer token to a Caller.

    Role and verified flag are read from the profile on every request, so a
    revoked employee loses access immediately.
    """
    credentials_exception = HTTPException(
        status_code=401,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"}
    )

    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id = payload.get("sub")
        if user_id is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    session = storage.session()
    try:
        profile = session.get(Profile, int(user_id))
        if profile is None:
            raise credentials_exception
        return caller_for(profile)
    finally:
        session.close()
