from datetime import timedelta
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from config import settings
from utils.app_utils import Token, authenticate_user, create_access_token

router = APIRouter()


@router.post("/login", response_model=Token)
async def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends()):
    """
    Handles user authentication and generates JWT access token.
    Args:
        form_data (OAuth2PasswordRequestForm): Form containing username (email) and password
    Returns:
        dict: Contains the generated access token and token type
            {
                "access_token": str,
                "token_type": "bearer"
            }
    Raises:
        HTTPException: 401 Unauthorized if login credentials are invalid
    """
    user = await authenticate_user(email=form_data.username, password=form_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid login details",
            headers={"WWW-Authenticate": "Bearer"},
        )

    expiry_time = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    token = create_access_token(payload={"sub": user.email}, expiry=expiry_time)

    return {"access_token": token, "token_type": "bearer"}
