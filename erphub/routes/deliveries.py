from typing import Optional, List

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ..auth.security import get_current_user, get_context, require_roles, ensure_owner_or_admin
from ..db import get_db
from ..documents.delivery_pdf import build_delivery_pdf, delivery_filename
from ..models.models import User
from ..schemas.assistant import SystemContext
from ..schemas.deliveries import DeliveryCreate, DeliveryUpdate, DeliveryOut
from ..services import deliveries as delivery_service
from ..services.audit import log_action
from ..services.clients import get_company
from ..services.context import resolve_company_id, scoped_filters


router = APIRouter(prefix="/deliveries", tags=["deliveries"])


@router.post("", response_model=DeliveryOut)
def create_delivery(
    payload: DeliveryCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    context: SystemContext = Depends(get_context),
):
    data = payload.model_dump()
    data["company_id"] = resolve_company_id(context, payload.company_id)
    delivery = delivery_service.create_delivery(db, created_by=user.id, **data)
    log_action(db, user, "CREATE", "delivery", delivery.id,
               payload.model_dump(mode="json", exclude={"items"}), request)
    return delivery


@router.get("", response_model=List[DeliveryOut])
def list_deliveries(
    delivery_type: Optional[str] = None,
    status: Optional[str] = None,
    company_id: Optional[str] = None,
    db: Session = Depends(get_db),
    context: SystemContext = Depends(get_context),
):
    filters = scoped_filters(context)
    return delivery_service.get_deliveries(
        db,
        company_id=filters.get("company_id") or company_id,
        delivery_type=delivery_type,
        status=status,
    )


@router.get("/{delivery_id}", response_model=DeliveryOut)
def get_delivery(delivery_id: str, db: Session = Depends(get_db), _=Depends(get_current_user)):
    return delivery_service.get_delivery(db, delivery_id)


@router.get("/{delivery_id}/pdf")
def delivery_pdf(delivery_id: str, db: Session = Depends(get_db), _=Depends(get_current_user)):
    delivery = delivery_service.get_delivery(db, delivery_id)
    company = get_company(db, delivery.company_id) if delivery.company_id else None
    pdf = build_delivery_pdf(delivery, company)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{delivery_filename(delivery)}"'},
    )


@router.put("/{delivery_id}", response_model=DeliveryOut)
def update_delivery(
    delivery_id: str,
    payload: DeliveryUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    ensure_owner_or_admin(user, delivery_service.get_delivery(db, delivery_id).created_by)
    delivery = delivery_service.update_delivery(db, delivery_id, **payload.model_dump(exclude_unset=True))
    log_action(db, user, "UPDATE", "delivery", delivery.id,
               payload.model_dump(mode="json", exclude_unset=True, exclude={"items"}), request)
    return delivery


@router.delete("/{delivery_id}")
def delete_delivery(delivery_id: str, request: Request, db: Session = Depends(get_db),
                    user: User = Depends(require_roles("admin"))):
    delivery_service.delete_delivery(db, delivery_id)
    log_action(db, user, "DELETE", "delivery", delivery_id, None, request)
    return {"status": "ok"}
