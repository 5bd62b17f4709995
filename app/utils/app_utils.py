from fastapi import HTTPException, Depends, Request
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel
from typing import Dict, Any
import bcrypt
from jose import JWTError, jwt
from db import users_collection
from models.users import User
from config import settings
from exceptions import get_user_exception

from datetime import datetime, timezone, timedelta

UTC = timezone.utc

oauth2_bearer = OAuth2PasswordBearer(tokenUrl="auth/login/")

secret_key = settings.SECRET_KEY
algorithm = settings.ALGORITHM


class Token(BaseModel):
    access_token: str
    token_type: str


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt()
    hashed_password = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed_password.decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if isinstance(hashed_password, str):
        hashed_password = hashed_password.encode('utf-8')

    return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password)


def create_access_token(payload: Dict[str, Any], expiry: timedelta):
    data_to_encode = {"data": payload}
    expiry_delta = datetime.now(UTC) + expiry
    data_to_encode.update({"exp": expiry_delta})
    encoded_data: str =  jwt.encode(data_to_encode, secret_key, algorithm)

    return encoded_data


async def authenticate_user(email: str, password: str):
    """
    authenticates user
    args:-
        - email: login email
        - password: password
    """
    is_valid_email = "@" in email and "." in email
    if not is_valid_email:
        return False

    document = await users_collection.find_one({"email": email})
    if not document:
        return False

    user = User(**document)
    if not verify_password(plain_password=password, hashed_password=user.password):
        return False
    return user


async def get_current_user(token: str = Depends(oauth2_bearer)) -> tuple:
    try:
        payload = jwt.decode(token, secret_key, algorithms=[algorithm])
        data = payload.get("data")

        if data is None:
            raise HTTPException(status_code=401, detail="Invalid token data.")

        pk: str = data.get("sub")
        if pk is None:
            raise get_user_exception()

        user = await users_collection.find_one({"email": pk})
        if not user:
            raise HTTPException(status_code=401, detail="User not found.")

        user["id"] = str(user["_id"])
        return user, user.get("role", "employee")

    except JWTError:
        raise HTTPException(status_code=401, detail="JWT Error - could not validate user.")


def get_client_ip(request: Request) -> str:
    forwarded_for = request.headers.get("x-forwarded-for")
    cf_connecting_ip = request.headers.get("cf-connecting-ip")
    real_ip = request.headers.get("x-real-ip")

    ip = "127.0.0.1"
    if forwarded_for:
        ip = forwarded_for.split(",")[0].strip()
    elif cf_connecting_ip:
        ip = cf_connecting_ip
    elif real_ip:
        ip = real_ip

    # IPv4-mapped IPv6 prefix
    if ip.lower().startswith("::ffff:"):
        ip = ip[7:]
    return ip
