from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import BaseModel
from passlib.hash import bcrypt
from exceptions import UserNotFound
from manager import UserManager
from models import User
from dotenv import load_dotenv
import os
from datetime import datetime, timedelta, UTC

load_dotenv()

users = UserManager()

# JWT configuration
SECRET_KEY = os.getenv("SECRET_KEY", "default-secret")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

# OAuth2 scheme
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/login")

class TokenData(BaseModel):
    user_id: str

def hash_password(password: str) -> str:
    return bcrypt.hash(password)

def authenticate(username: str, password: str) -> User | None:
    """Return the user if the credentials match and the account is not banned."""
    user = users.get_by_username(username)
    if user is None or user.is_banned or not bcrypt.verify(password, user.password_hash):
        return None
    return user

def create_access_token(user: User) -> str:
    """Issue a token whose subject is the user id, carrying the role for clients."""
    claims = {
        "sub": user.id,
        "role": user.role.value,
        "exp": datetime.now(UTC) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    }
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)

async def get_current_user(token: str = Depends(oauth2_scheme)) -> User:
    """Resolve the acting user from a JWT token."""
    credentials_exception = HTTPException(
        status_code=401,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id: str = payload.get("sub")
        if user_id is None:
            raise credentials_exception
        token_data = TokenData(user_id=user_id)
    except JWTError:
        raise credentials_exception
    try:
        return users.get(token_data.user_id)
    except UserNotFound:
        raise HTTPException(status_code=401, detail="User not found")
