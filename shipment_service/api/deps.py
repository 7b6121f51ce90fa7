from fastapi import Depends, Request
from sqlalchemy.orm import Session
from shipment_service.application.user_service import UserService
from shipment_service.core import set_request_context
from shipment_service.domain.errors import Unauthorized
from shipment_service.domain.models import User
from shipment_service.domain.policy import ensure_admin
from shipment_service.infrastructure.db import get_db

BEARER_PREFIX = "Bearer "

def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith(BEARER_PREFIX):
        raise Unauthorized("No token provided")
    token = auth_header.split(" ", 1)[1].strip()
    user = UserService(db).authenticate_token(token)
    set_request_context(user_id=str(user.id))
    return user

def require_admin(user: User = Depends(get_current_user)) -> User:
    ensure_admin(user)
    return user
