"""
Air/sea delivery forms.
"""
from datetime import date
from typing import Optional, List, Dict, Any

from sqlalchemy.orm import Session

from ..errors import InvalidInputError, NotFoundError
from ..models.models import Delivery
from .context import as_uuid, optional_uuid

DELIVERY_TYPES = ("air", "sea")
DELIVERY_STATUSES = ("pending", "in_transit", "delivered", "cancelled")
DEPARTURES = ("Dubai", "China")


def _clean_items(items: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    cleaned = []
    for item in items or []:
        name = (item.get("name") or "").strip()
        if not name:
            raise InvalidInputError("Each delivery item needs a name")
        cleaned.append({"name": name, "picture": item.get("picture") or None})
    return cleaned


def _validate(fields: Dict[str, Any]) -> None:
    if fields.get("delivery_type") is not None and fields["delivery_type"] not in DELIVERY_TYPES:
        raise InvalidInputError("Delivery type must be 'air' or 'sea'")
    if fields.get("departure") is not None and fields["departure"] not in DEPARTURES:
        raise InvalidInputError(f"Departure must be one of: {', '.join(DEPARTURES)}")
    if fields.get("status") is not None and fields["status"] not in DELIVERY_STATUSES:
        raise InvalidInputError(f"Invalid delivery status '{fields['status']}'")


def create_delivery(
    db: Session,
    delivery_type: str,
    date: date,
    client_name: str,
    departure: str,
    destination: str,
    items: Optional[List[Dict[str, Any]]] = None,
    sender_phone: Optional[str] = None,
    size_kg_volume: Optional[str] = None,
    receiver_details: Optional[str] = None,
    estimate_arrival_date: Optional[date] = None,
    company_id=None,
    created_by=None,
) -> Delivery:
    _validate({"delivery_type": delivery_type, "departure": departure})
    if not client_name or not destination:
        raise InvalidInputError("Client name and destination are required")
    delivery = Delivery(
        delivery_type=delivery_type,
        date=date,
        client_name=client_name,
        sender_phone=sender_phone,
        items=_clean_items(items),
        size_kg_volume=size_kg_volume,
        departure=departure,
        destination=destination,
        receiver_details=receiver_details,
        estimate_arrival_date=estimate_arrival_date,
        status="pending",
        company_id=optional_uuid(company_id, "Company ID"),
        created_by=optional_uuid(created_by, "Created By"),
    )
    db.add(delivery)
    db.commit()
    db.refresh(delivery)
    return delivery


def get_delivery(db: Session, delivery_id) -> Delivery:
    delivery = db.query(Delivery).filter(Delivery.id == as_uuid(delivery_id, "Delivery ID")).first()
    if delivery is None:
        raise NotFoundError("Delivery not found")
    return delivery


def get_deliveries(db: Session, company_id=None, delivery_type: Optional[str] = None,
                   status: Optional[str] = None) -> List[Delivery]:
    query = db.query(Delivery)
    if company_id:
        query = query.filter(Delivery.company_id == as_uuid(company_id, "Company ID"))
    if delivery_type:
        query = query.filter(Delivery.delivery_type == delivery_type)
    if status:
        query = query.filter(Delivery.status == status)
    return query.order_by(Delivery.date.desc()).all()


def update_delivery(db: Session, delivery_id, **fields) -> Delivery:
    delivery = get_delivery(db, delivery_id)
    _validate(fields)
    if fields.get("items") is not None:
        fields["items"] = _clean_items(fields["items"])
    for key, value in fields.items():
        if value is not None and hasattr(delivery, key):
            setattr(delivery, key, value)
    db.commit()
    db.refresh(delivery)
    return delivery


def delete_delivery(db: Session, delivery_id) -> None:
    db.delete(get_delivery(db, delivery_id))
    db.commit()
