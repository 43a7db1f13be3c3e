from pydantic import BaseModel, ConfigDict, Field


class RegisterRequest(BaseModel):
    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=8, max_length=72)  # bcrypt input limit
    role: str


class LoginRequest(BaseModel):
    username: str
    password: str


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    username: str
    role: str


class LoginResponse(BaseModel):
    api_key: str
    token_type: str = "api_key"
