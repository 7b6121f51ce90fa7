from typing import Optional
from fastapi import UploadFile
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from shipment_service.core import get_logger
from shipment_service.core_settings import get_settings
from shipment_service.domain import lifecycle
from shipment_service.domain.errors import BadRequest, Conflict, NotFound, ValidationFailed
from shipment_service.domain.models import Attachment, Shipment, ShipmentStatus
from shipment_service.domain.policy import Action, Actor, ensure_can_access, shipment_scope
from shipment_service.infrastructure.storage import ATTACHMENT_TYPES, get_storage
from .schemas import Page, ShipmentCreate, ShipmentStats, ShipmentUpdate

logger = get_logger(__name__)

SORT_FIELDS = {
    "createdAt": Shipment.created_at,
    "updatedAt": Shipment.updated_at,
    "trackingNumber": Shipment.tracking_number,
    "status": Shipment.status,
}

# Optional columns an update may set back to null
CLEARABLE_FIELDS = {"weight", "description", "estimated_delivery"}

class ShipmentService:
    def __init__(self, db: Session):
        self.db = db

    def _tracking_number_exists(self, tracking_number: str) -> bool:
        return self.db.query(Shipment.id).filter(Shipment.tracking_number == tracking_number).first() is not None

    def _load(self, shipment_id: int) -> Shipment:
        shipment = self.db.get(Shipment, shipment_id)
        if not shipment:
            raise NotFound("Shipment not found")
        return shipment

    def _commit(self, shipment: Shipment) -> Shipment:
        self.db.commit()
        self.db.refresh(shipment)
        return shipment

    # ---- reads -------------------------------------------------------------

    def list(
        self,
        actor: Actor,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
        search: Optional[str] = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
        user_id: Optional[int] = None,
    ) -> Page[Shipment]:
        query = self.db.query(Shipment)
        owner_id = shipment_scope(actor, user_id)
        if owner_id is not None:
            query = query.filter(Shipment.created_by == owner_id)
        if status:
            query = query.filter(Shipment.status == status)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(or_(
                func.lower(Shipment.tracking_number).like(pattern),
                func.lower(Shipment.sender_name).like(pattern),
                func.lower(Shipment.receiver_name).like(pattern),
                func.lower(Shipment.origin).like(pattern),
                func.lower(Shipment.destination).like(pattern),
            ))

        total = query.count()
        column = SORT_FIELDS.get(sort_by, Shipment.created_at)
        ordering = column.asc() if sort_order == "asc" else column.desc()
        tiebreak = Shipment.id.asc() if sort_order == "asc" else Shipment.id.desc()
        items = query.order_by(ordering, tiebreak).offset((page - 1) * limit).limit(limit).all()
        return Page(items=items, page=page, limit=limit, total=total)

    def get(self, shipment_id: int, actor: Actor) -> Shipment:
        shipment = self._load(shipment_id)
        ensure_can_access(actor, shipment.created_by, Action.READ)
        return shipment

    def find_by_tracking_number(self, tracking_number: str) -> Shipment:
        tn = lifecycle.normalize_tracking_number(tracking_number)
        shipment = self.db.query(Shipment).filter(Shipment.tracking_number == tn).first()
        if not shipment:
            raise NotFound("Shipment not found")
        return shipment

    def get_by_tracking_number(self, tracking_number: str, actor: Actor) -> Shipment:
        shipment = self.find_by_tracking_number(tracking_number)
        ensure_can_access(actor, shipment.created_by, Action.READ)
        return shipment

    def track(self, tracking_number: str) -> Shipment:
        """Public lookup; callers must render it with the owner-free view."""
        return self.find_by_tracking_number(tracking_number)

    def statistics(self, owner_id: Optional[int] = None) -> ShipmentStats:
        query = self.db.query(Shipment.status, func.count(Shipment.id))
        if owner_id is not None:
            query = query.filter(Shipment.created_by == owner_id)
        counts = {status.value: 0 for status in ShipmentStatus}
        for status, count in query.group_by(Shipment.status).all():
            counts[status] = count
        return ShipmentStats(total=sum(counts.values()), **counts)

    # ---- writes ------------------------------------------------------------

    def create(self, data: ShipmentCreate, actor: Actor, tracking_number: Optional[str] = None) -> Shipment:
        tn = lifecycle.allocate_tracking_number(self._tracking_number_exists, supplied=tracking_number)
        payload = data.model_dump()
        status = payload.pop("status")
        shipment = Shipment(
            **payload,
            tracking_number=tn,
            status=ShipmentStatus(status).value,
            created_by=actor.id,
            updated_by=actor.id,
        )
        lifecycle.start_history(shipment, actor.id)
        self.db.add(shipment)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise Conflict(f"Tracking number {tn} already exists")
        self.db.refresh(shipment)
        logger.info(
            "Shipment created",
            extra={'extra_fields': {'shipment_id': shipment.id, 'tracking_number': tn, 'user_id': actor.id}},
        )
        return shipment

    def update(self, shipment_id: int, data: ShipmentUpdate, actor: Actor) -> Shipment:
        # Only provided fields; status goes through the transition table
        update_data = {
            key: value for key, value in data.model_dump(exclude_unset=True).items()
            if value is not None or key in CLEARABLE_FIELDS
        }
        if not update_data:
            raise ValidationFailed("No updatable fields provided")
        shipment = self._load(shipment_id)
        ensure_can_access(actor, shipment.created_by, Action.UPDATE)

        requested_status = update_data.pop("status", None)
        for key, value in update_data.items():
            setattr(shipment, key, value)
        if requested_status is not None:
            lifecycle.apply_transition(shipment, ShipmentStatus(requested_status).value, actor.id)
        shipment.updated_by = actor.id
        return self._commit(shipment)

    def change_status(self, shipment_id: int, status: str, actor: Actor, notes: Optional[str] = None) -> Shipment:
        shipment = self._load(shipment_id)
        ensure_can_access(actor, shipment.created_by, Action.CHANGE_STATUS)
        previous = shipment.status
        if not lifecycle.apply_transition(shipment, ShipmentStatus(status).value, actor.id, notes):
            return shipment
        self._commit(shipment)
        logger.info(
            "Shipment status changed",
            extra={'extra_fields': {
                'shipment_id': shipment.id, 'from_status': previous, 'to_status': shipment.status,
                'user_id': actor.id,
            }},
        )
        return shipment

    def delete(self, shipment_id: int, actor: Actor) -> None:
        shipment = self._load(shipment_id)
        ensure_can_access(actor, shipment.created_by, Action.DELETE)
        lifecycle.ensure_deletable(shipment, actor)

        paths = [a.path for a in shipment.attachments]
        self.db.delete(shipment)
        self.db.commit()
        storage = get_storage()
        for path in paths:
            storage.delete(path)
        logger.info("Shipment deleted", extra={'extra_fields': {'shipment_id': shipment_id, 'user_id': actor.id}})

    def add_attachment(self, shipment_id: int, upload: Optional[UploadFile], actor: Actor) -> Shipment:
        if upload is None or not upload.filename:
            raise BadRequest("Please upload a file")
        shipment = self._load(shipment_id)
        ensure_can_access(actor, shipment.created_by, Action.ADD_ATTACHMENT)
        max_attachments = get_settings().MAX_ATTACHMENTS
        if len(shipment.attachments) >= max_attachments:
            raise BadRequest(f"A shipment can have at most {max_attachments} attachments")

        # Bytes first, then the record
        stored = get_storage().store(upload, allowed_types=ATTACHMENT_TYPES)
        shipment.attachments.append(Attachment(
            filename=stored.filename,
            original_name=stored.original_name,
            path=stored.path,
            mimetype=stored.mimetype,
            size=stored.size,
        ))
        shipment.updated_by = actor.id
        self._commit(shipment)
        logger.info(
            "Attachment added",
            extra={'extra_fields': {'shipment_id': shipment.id, 'upload_file': stored.filename}},
        )
        return shipment

    def remove_attachment(self, shipment_id: int, attachment_id: int, actor: Actor) -> Shipment:
        shipment = self._load(shipment_id)
        ensure_can_access(actor, shipment.created_by, Action.REMOVE_ATTACHMENT)
        attachment = next((a for a in shipment.attachments if a.id == attachment_id), None)
        if attachment is None:
            raise NotFound("Attachment not found")

        path = attachment.path
        shipment.attachments.remove(attachment)
        shipment.updated_by = actor.id
        self._commit(shipment)
        get_storage().delete(path)
        logger.info(
            "Attachment removed",
            extra={'extra_fields': {'shipment_id': shipment.id, 'attachment_id': attachment_id}},
        )
        return shipment
