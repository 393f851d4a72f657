from typing import Optional, List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..auth.security import get_current_user, get_context, require_roles
from ..db import get_db
from ..models.models import User
from ..schemas.assistant import SystemContext
from ..schemas.products import ProductCreate, ProductUpdate, ProductOut, SaleCreate, SaleOut
from ..services import products as product_service
from ..services.audit import log_action
from ..services.context import resolve_company_id, scoped_filters


router = APIRouter(prefix="/products", tags=["products"])


@router.post("", response_model=ProductOut)
def create_product(
    payload: ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    context: SystemContext = Depends(get_context),
):
    data = payload.model_dump(exclude={"company_id"})
    product = product_service.create_product(
        db, company_id=resolve_company_id(context, payload.company_id), created_by=user.id, **data
    )
    log_action(db, user, "CREATE", "product", product.id, payload.model_dump(mode="json", exclude={"image"}), request)
    return product


@router.get("", response_model=List[ProductOut])
def list_products(
    status: Optional[str] = None,
    company_id: Optional[str] = None,
    db: Session = Depends(get_db),
    context: SystemContext = Depends(get_context),
):
    filters = scoped_filters(context)
    return product_service.get_products(db, company_id=filters.get("company_id") or company_id, status=status)


@router.get("/sales", response_model=List[SaleOut])
def list_sales(
    product_id: Optional[str] = None,
    company_id: Optional[str] = None,
    db: Session = Depends(get_db),
    context: SystemContext = Depends(get_context),
):
    filters = scoped_filters(context)
    return product_service.get_sales(
        db,
        company_id=filters.get("company_id") or company_id,
        sold_by=filters.get("user_id"),
        product_id=product_id,
    )


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: str, db: Session = Depends(get_db), _=Depends(get_current_user)):
    return product_service.get_product(db, product_id)


@router.put("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: str,
    payload: ProductUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    product = product_service.update_product(db, product_id, **payload.model_dump(exclude_unset=True))
    log_action(db, user, "UPDATE", "product", product.id,
               payload.model_dump(mode="json", exclude_unset=True, exclude={"image"}), request)
    return product


@router.post("/{product_id}/sales", response_model=SaleOut)
def sell_product(
    product_id: str,
    payload: SaleCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    sale = product_service.record_sale(db, product_id, sold_by=user.id, **payload.model_dump())
    log_action(db, user, "CREATE", "product_sale", sale.id, payload.model_dump(mode="json"), request)
    return sale


@router.delete("/{product_id}")
def delete_product(product_id: str, request: Request, db: Session = Depends(get_db),
                   user: User = Depends(require_roles("admin"))):
    product_service.delete_product(db, product_id)
    log_action(db, user, "DELETE", "product", product_id, None, request)
    return {"status": "ok"}
