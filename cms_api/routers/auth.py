# cms_api/routers/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm

from cms_api.deps import get_auth_service
from cms_api.schemas.auth import LoginPayload
from cms_api.schemas.common import ok
from cms_api.services.auth import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login")
def login(payload: LoginPayload, auth: AuthService = Depends(get_auth_service)):
    return ok(auth.login(payload.email, payload.password), "Login successful")


@router.post("/token")
def token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    auth: AuthService = Depends(get_auth_service),
):
    # OAuth2 password flow used by the interactive docs; "username" carries the email
    result = auth.login(form_data.username, form_data.password)
    return {"access_token": result.token, "token_type": "bearer"}
