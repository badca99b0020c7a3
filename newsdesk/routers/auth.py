from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk.database import get_db
from newsdesk.schemas import ApiResponse, LoginRequest, SignupRequest, TokenResponse, UserResponse
from newsdesk.services import auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", status_code=201, response_model=ApiResponse[UserResponse])
async def signup(data: SignupRequest, db: AsyncSession = Depends(get_db)):
    user = await auth_service.signup(db, data)
    return ApiResponse(message=auth_service.SIGNUP_SUCCESS_MESSAGE, data=user)


@router.post("/login", response_model=ApiResponse[TokenResponse])
async def login(data: LoginRequest, db: AsyncSession = Depends(get_db)):
    token = await auth_service.login(db, data)
    return ApiResponse(message=auth_service.LOGIN_SUCCESS_MESSAGE, data=token)
