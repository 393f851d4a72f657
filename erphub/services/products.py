"""
Product inventory and product sales. Sold sales feed the financial summary as income.
"""
from typing import Optional, List

from sqlalchemy.orm import Session

from ..errors import InvalidInputError, NotFoundError
from ..models.models import Product, ProductSale
from .context import as_uuid, optional_uuid
from .time_rules import now_utc

PRODUCT_STATUSES = ("available", "sold", "pending")


def create_product(db: Session, company_id, created_by, name: str, quantity: int = 1, **fields) -> Product:
    if not name or not name.strip():
        raise InvalidInputError("Product name is required")
    if quantity < 0:
        raise InvalidInputError("Quantity must not be negative")
    product = Product(
        company_id=as_uuid(company_id, "Company ID"),
        created_by=optional_uuid(created_by, "Created By"),
        name=name.strip(),
        quantity=quantity,
        status="available",
        **fields,
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def get_product(db: Session, product_id) -> Product:
    product = db.query(Product).filter(Product.id == as_uuid(product_id, "Product ID")).first()
    if product is None:
        raise NotFoundError("Product not found")
    return product


def get_products(db: Session, company_id=None, status: Optional[str] = None, created_by=None) -> List[Product]:
    query = db.query(Product)
    if company_id:
        query = query.filter(Product.company_id == as_uuid(company_id, "Company ID"))
    if status:
        query = query.filter(Product.status == status)
    if created_by:
        query = query.filter(Product.created_by == as_uuid(created_by, "Created By"))
    return query.order_by(Product.created_at.desc()).all()


def update_product(db: Session, product_id, **fields) -> Product:
    product = get_product(db, product_id)
    if fields.get("status") is not None and fields["status"] not in PRODUCT_STATUSES:
        raise InvalidInputError(f"Invalid product status '{fields['status']}'")
    for key, value in fields.items():
        if value is not None and hasattr(product, key):
            setattr(product, key, value)
    db.commit()
    db.refresh(product)
    return product


def delete_product(db: Session, product_id) -> None:
    db.delete(get_product(db, product_id))
    db.commit()


def record_sale(
    db: Session,
    product_id,
    sold_by,
    client_name: str,
    quantity: int,
    unit_price: float,
    client_email: Optional[str] = None,
    client_phone: Optional[str] = None,
    notes: Optional[str] = None,
) -> ProductSale:
    """Sell `quantity` units; the product is marked sold when stock reaches zero."""
    product = get_product(db, product_id)
    if quantity <= 0:
        raise InvalidInputError("Sale quantity must be positive")
    if unit_price < 0:
        raise InvalidInputError("Unit price must not be negative")
    if quantity > product.quantity:
        raise InvalidInputError(f"Only {product.quantity} unit(s) of {product.name} in stock")
    sale = ProductSale(
        product_id=product.id,
        sold_by=optional_uuid(sold_by, "Sold By"),
        company_id=product.company_id,
        client_name=client_name,
        client_email=client_email,
        client_phone=client_phone,
        quantity=quantity,
        unit_price=unit_price,
        total_amount=round(quantity * unit_price, 2),
        status="sold",
        sold_at=now_utc(),
        notes=notes,
    )
    product.quantity -= quantity
    if product.quantity == 0:
        product.status = "sold"
    db.add(sale)
    db.commit()
    db.refresh(sale)
    return sale


def get_sales(db: Session, company_id=None, sold_by=None, product_id=None) -> List[ProductSale]:
    query = db.query(ProductSale)
    if company_id:
        query = query.filter(ProductSale.company_id == as_uuid(company_id, "Company ID"))
    if sold_by:
        query = query.filter(ProductSale.sold_by == as_uuid(sold_by, "Sold By"))
    if product_id:
        query = query.filter(ProductSale.product_id == as_uuid(product_id, "Product ID"))
    return query.order_by(ProductSale.created_at.desc()).all()
