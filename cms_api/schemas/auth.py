from pydantic import BaseModel, EmailStr, Field


class LoginPayload(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserSummary(BaseModel):
    id: int
    name: str
    email: str


class LoginResponse(BaseModel):
    token: str
    expires_in: int
    user: UserSummary
