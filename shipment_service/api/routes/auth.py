from typing import Optional
from fastapi import APIRouter, Depends, File, Request, UploadFile
from sqlalchemy.orm import Session
from shipment_service.api import responses
from shipment_service.api.deps import get_current_user
from shipment_service.application.schemas import (
    AuthResult,
    Envelope,
    LoginRequest,
    PasswordChange,
    ProfileUpdate,
    RegisterRequest,
    TokenResult,
    UserRead,
)
from shipment_service.application.user_service import UserService
from shipment_service.core_settings import get_settings
from shipment_service.domain.models import User
from shipment_service.infrastructure.db import get_db
from shipment_service.infrastructure.rate_limit import limiter

settings = get_settings()

router = APIRouter(prefix="/auth", tags=["auth"])

def _auth_result(user: User, token: str) -> AuthResult:
    return AuthResult(user=UserRead.model_validate(user), token=token)

@router.post("/register", response_model=Envelope[AuthResult], status_code=201)
@limiter.limit(settings.RATE_LIMIT_AUTH)
def register(request: Request, payload: RegisterRequest, db: Session = Depends(get_db)):
    user, token = UserService(db).register(payload)
    return responses.created("User registered successfully", _auth_result(user, token))

@router.post("/login", response_model=Envelope[AuthResult])
@limiter.limit(settings.RATE_LIMIT_AUTH)
def login(request: Request, payload: LoginRequest, db: Session = Depends(get_db)):
    user, token = UserService(db).login(payload.email, payload.password)
    return responses.success("Login successful", _auth_result(user, token))

@router.get("/profile", response_model=Envelope[UserRead])
def get_profile(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    profile = UserService(db).get_profile(user.id)
    return responses.success("Profile retrieved successfully", UserRead.model_validate(profile))

@router.put("/profile", response_model=Envelope[UserRead])
def update_profile(payload: ProfileUpdate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    updated = UserService(db).update_profile(user.id, payload)
    return responses.success("Profile updated successfully", UserRead.model_validate(updated))

@router.put("/password", response_model=Envelope[TokenResult])
def change_password(payload: PasswordChange, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    token = UserService(db).change_password(user.id, payload.current_password, payload.new_password)
    return responses.success("Password changed successfully", TokenResult(token=token))

@router.put("/avatar", response_model=Envelope[UserRead])
def upload_avatar(
    avatar: Optional[UploadFile] = File(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updated = UserService(db).update_avatar(user.id, avatar)
    return responses.success("Avatar uploaded successfully", UserRead.model_validate(updated))

@router.get("/verify")
def verify_token(user: User = Depends(get_current_user)):
    return responses.success("Token is valid", {"user": UserRead.model_validate(user)})
