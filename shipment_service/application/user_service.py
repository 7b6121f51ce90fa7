from typing import Optional
from fastapi import UploadFile
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from shipment_service.core import get_logger
from shipment_service.core_settings import get_settings
from shipment_service.domain.errors import BadRequest, Conflict, Forbidden, NotFound, Unauthorized, ValidationFailed
from shipment_service.domain.models import User, UserRole, utcnow
from shipment_service.infrastructure.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from shipment_service.infrastructure.storage import IMAGE_TYPES, get_storage
from .schemas import Page, ProfileUpdate, RegisterRequest

logger = get_logger(__name__)

def issue_token(user: User) -> str:
    return create_access_token(user.id, user.email, user.role)

class UserService:
    def __init__(self, db: Session):
        self.db = db

    def _by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.strip().lower()).first()

    def get_user(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if not user:
            raise NotFound("User not found")
        return user

    # ---- authentication ----------------------------------------------------

    def register(self, data: RegisterRequest) -> tuple[User, str]:
        email = data.email.lower()
        if self._by_email(email):
            raise Conflict("Email already registered")

        user = User(
            name=data.name,
            email=email,
            password_hash=hash_password(data.password),
            role=UserRole.USER.value,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise Conflict("Email already registered")
        self.db.refresh(user)
        logger.info("User registered", extra={'extra_fields': {'user_id': user.id}})
        return user, issue_token(user)

    def login(self, email: str, password: str) -> tuple[User, str]:
        user = self._by_email(email)
        if not user or not verify_password(password, user.password_hash):
            logger.warning("Failed login attempt")
            raise Unauthorized("Invalid email or password")
        if not user.is_active:
            raise Forbidden("Account is deactivated")

        user.last_login = utcnow()
        self.db.commit()
        self.db.refresh(user)
        logger.info("User logged in", extra={'extra_fields': {'user_id': user.id}})
        return user, issue_token(user)

    def authenticate_token(self, token: str) -> User:
        """Resolve a bearer token to an active user."""
        claims = decode_access_token(token)
        if not claims or "sub" not in claims:
            raise Unauthorized("Invalid or expired token")
        try:
            user_id = int(claims["sub"])
        except (TypeError, ValueError):
            raise Unauthorized("Invalid or expired token")
        user = self.db.get(User, user_id)
        if not user or not user.is_active:
            raise Unauthorized("Invalid or expired token")
        return user

    # ---- own profile -------------------------------------------------------

    def get_profile(self, user_id: int) -> User:
        return self.get_user(user_id)

    def update_profile(self, user_id: int, data: ProfileUpdate) -> User:
        if data.name is None and data.email is None:
            raise ValidationFailed("Provide a name or an email to update")
        user = self.get_user(user_id)
        if data.email is not None:
            email = data.email.lower()
            other = self._by_email(email)
            if other and other.id != user.id:
                raise Conflict("Email already in use")
            user.email = email
        if data.name is not None:
            user.name = data.name

        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise Conflict("Email already in use")
        self.db.refresh(user)
        return user

    def change_password(self, user_id: int, current_password: str, new_password: str) -> str:
        user = self.get_user(user_id)
        if not verify_password(current_password, user.password_hash):
            raise BadRequest("Current password is incorrect")
        user.password_hash = hash_password(new_password)
        self.db.commit()
        logger.info("Password changed", extra={'extra_fields': {'user_id': user.id}})
        return issue_token(user)

    def update_avatar(self, user_id: int, upload: Optional[UploadFile]) -> User:
        if upload is None or not upload.filename:
            raise BadRequest("Please upload an image")
        user = self.get_user(user_id)
        storage = get_storage()
        stored = storage.store(upload, allowed_types=IMAGE_TYPES, max_size=get_settings().MAX_AVATAR_SIZE)

        previous = user.avatar
        user.avatar = stored.path
        self.db.commit()
        self.db.refresh(user)
        if previous:
            storage.delete(previous)
        return user

    # ---- administration ----------------------------------------------------

    def list_users(
        self,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Page[User]:
        query = self.db.query(User)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(or_(func.lower(User.name).like(pattern), func.lower(User.email).like(pattern)))
        if role:
            query = query.filter(User.role == role)
        if is_active is not None:
            query = query.filter(User.is_active == is_active)

        total = query.count()
        items = (
            query.order_by(User.created_at.desc(), User.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return Page(items=items, page=page, limit=limit, total=total)

    def update_role(self, user_id: int, role: UserRole) -> User:
        user = self.get_user(user_id)
        user.role = UserRole(role).value
        self.db.commit()
        self.db.refresh(user)
        logger.info("User role updated", extra={'extra_fields': {'user_id': user.id, 'role': user.role}})
        return user

    def set_active(self, user_id: int, active: bool) -> User:
        user = self.get_user(user_id)
        user.is_active = active
        self.db.commit()
        self.db.refresh(user)
        logger.info(
            "User activated" if active else "User deactivated",
            extra={'extra_fields': {'user_id': user.id}},
        )
        return user

    def activate(self, user_id: int) -> User:
        return self.set_active(user_id, True)

    def deactivate(self, user_id: int) -> User:
        return self.set_active(user_id, False)

    def delete_user(self, user_id: int) -> None:
        # Shipments keep their created_by id and are left in place
        user = self.get_user(user_id)
        self.db.delete(user)
        self.db.commit()
        logger.info("User deleted", extra={'extra_fields': {'user_id': user_id}})
