"""User registration and login.

POST /api/v1/users/register -- create a user with a role
POST /api/v1/users/login    -- exchange credentials for an API key (X-API-Key)
"""

from fastapi import APIRouter

from app.dependencies import DbSession
from app.schemas.user import LoginRequest, LoginResponse, RegisterRequest, UserResponse
from app.services import users as user_service

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.post("/register", response_model=UserResponse, status_code=201)
async def register(body: RegisterRequest, db: DbSession) -> UserResponse:
    user = await user_service.register_user(db, body.username, body.password, body.role)
    return UserResponse.model_validate(user)


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, db: DbSession) -> LoginResponse:
    api_key = await user_service.login(db, body.username, body.password)
    return LoginResponse(api_key=api_key)
