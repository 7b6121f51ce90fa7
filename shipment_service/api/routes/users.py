from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from shipment_service.api import responses
from shipment_service.api.deps import require_admin
from shipment_service.application.schemas import Envelope, RoleUpdate, UserRead
from shipment_service.application.user_service import UserService
from shipment_service.domain.models import UserRole
from shipment_service.infrastructure.db import get_db

# Every route here is admin-only
router = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(require_admin)])

@router.get("", response_model=Envelope[list[UserRead]])
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None, max_length=100),
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = Query(None, alias="isActive"),
    db: Session = Depends(get_db),
):
    result = UserService(db).list_users(
        page=page,
        limit=limit,
        search=search,
        role=role.value if role else None,
        is_active=is_active,
    )
    return responses.paginated(
        "Users retrieved successfully",
        [UserRead.model_validate(u) for u in result.items],
        result.pagination,
    )

@router.get("/{user_id}", response_model=Envelope[UserRead])
def get_user(user_id: int, db: Session = Depends(get_db)):
    user = UserService(db).get_user(user_id)
    return responses.success("User retrieved successfully", UserRead.model_validate(user))

@router.put("/{user_id}/role", response_model=Envelope[UserRead])
def update_role(user_id: int, payload: RoleUpdate, db: Session = Depends(get_db)):
    user = UserService(db).update_role(user_id, payload.role)
    return responses.success("User role updated successfully", UserRead.model_validate(user))

@router.put("/{user_id}/deactivate", response_model=Envelope[UserRead])
def deactivate_user(user_id: int, db: Session = Depends(get_db)):
    user = UserService(db).deactivate(user_id)
    return responses.success("User deactivated successfully", UserRead.model_validate(user))

@router.put("/{user_id}/activate", response_model=Envelope[UserRead])
def activate_user(user_id: int, db: Session = Depends(get_db)):
    user = UserService(db).activate(user_id)
    return responses.success("User activated successfully", UserRead.model_validate(user))

@router.delete("/{user_id}")
def delete_user(user_id: int, db: Session = Depends(get_db)):
    UserService(db).delete_user(user_id)
    return responses.success("User deleted successfully")
