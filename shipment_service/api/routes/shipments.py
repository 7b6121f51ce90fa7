from typing import Literal, Optional
from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session
from shipment_service.api import responses
from shipment_service.api.deps import get_current_user
from shipment_service.application.schemas import (
    Envelope,
    ShipmentCreate,
    ShipmentRead,
    ShipmentStats,
    ShipmentUpdate,
    StatusUpdate,
)
from shipment_service.application.shipment_service import ShipmentService
from shipment_service.domain.models import ShipmentStatus, User
from shipment_service.domain.policy import shipment_scope
from shipment_service.infrastructure.db import get_db

router = APIRouter(prefix="/shipments", tags=["shipments"])

SortField = Literal["createdAt", "updatedAt", "trackingNumber", "status"]

# Fixed paths are declared before /{shipment_id}

@router.get("/stats", response_model=Envelope[ShipmentStats])
def shipment_stats(
    user_id: Optional[int] = Query(None, alias="userId"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    stats = ShipmentService(db).statistics(shipment_scope(user, user_id))
    return responses.success("Statistics retrieved successfully", stats)

@router.get("/my-stats", response_model=Envelope[ShipmentStats])
def my_shipment_stats(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    stats = ShipmentService(db).statistics(user.id)
    return responses.success("Statistics retrieved successfully", stats)

@router.get("/track/{tracking_number}", response_model=Envelope[ShipmentRead])
def get_by_tracking_number(
    tracking_number: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    shipment = ShipmentService(db).get_by_tracking_number(tracking_number, user)
    return responses.success("Shipment retrieved successfully", ShipmentRead.from_shipment(shipment))

@router.get("", response_model=Envelope[list[ShipmentRead]])
def list_shipments(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[ShipmentStatus] = None,
    search: Optional[str] = Query(None, max_length=100),
    sort_by: SortField = Query("createdAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    user_id: Optional[int] = Query(None, alias="userId"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    result = ShipmentService(db).list(
        user,
        page=page,
        limit=limit,
        status=status.value if status else None,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        user_id=user_id,
    )
    return responses.paginated(
        "Shipments retrieved successfully",
        [ShipmentRead.from_shipment(s) for s in result.items],
        result.pagination,
    )

@router.post("", response_model=Envelope[ShipmentRead], status_code=201)
def create_shipment(payload: ShipmentCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    shipment = ShipmentService(db).create(payload, user)
    return responses.created("Shipment created successfully", ShipmentRead.from_shipment(shipment))

@router.get("/{shipment_id}", response_model=Envelope[ShipmentRead])
def get_shipment(shipment_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    shipment = ShipmentService(db).get(shipment_id, user)
    return responses.success("Shipment retrieved successfully", ShipmentRead.from_shipment(shipment))

@router.put("/{shipment_id}", response_model=Envelope[ShipmentRead])
def update_shipment(
    shipment_id: int,
    payload: ShipmentUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    shipment = ShipmentService(db).update(shipment_id, payload, user)
    return responses.success("Shipment updated successfully", ShipmentRead.from_shipment(shipment))

@router.patch("/{shipment_id}/status", response_model=Envelope[ShipmentRead])
def update_status(
    shipment_id: int,
    payload: StatusUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    shipment = ShipmentService(db).change_status(shipment_id, payload.status, user, payload.notes)
    return responses.success("Shipment status updated successfully", ShipmentRead.from_shipment(shipment))

@router.delete("/{shipment_id}")
def delete_shipment(shipment_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    ShipmentService(db).delete(shipment_id, user)
    return responses.success("Shipment deleted successfully")

@router.post("/{shipment_id}/attachments", response_model=Envelope[ShipmentRead])
def add_attachment(
    shipment_id: int,
    file: Optional[UploadFile] = File(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    shipment = ShipmentService(db).add_attachment(shipment_id, file, user)
    return responses.success("Attachment uploaded successfully", ShipmentRead.from_shipment(shipment))

@router.delete("/{shipment_id}/attachments/{attachment_id}", response_model=Envelope[ShipmentRead])
def remove_attachment(
    shipment_id: int,
    attachment_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    shipment = ShipmentService(db).remove_attachment(shipment_id, attachment_id, user)
    return responses.success("Attachment removed successfully", ShipmentRead.from_shipment(shipment))
