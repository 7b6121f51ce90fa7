from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from shipment_service.api import responses
from shipment_service.application.schemas import Envelope, TrackingRead
from shipment_service.application.shipment_service import ShipmentService
from shipment_service.infrastructure.db import get_db

router = APIRouter(prefix="/track", tags=["tracking"])

@router.get("/{tracking_number}", response_model=Envelope[TrackingRead])
def track_shipment(tracking_number: str, db: Session = Depends(get_db)):
    """Public tracking lookup. No authentication; owner details are never included."""
    shipment = ShipmentService(db).track(tracking_number)
    return responses.success("Shipment tracking information retrieved", TrackingRead.from_shipment(shipment))
