"""Product variant mutations keeping parent stock in sync."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models.product import Product, ProductVariant


def recalculate_product_quantity(db: Session, product: Product) -> int:
    """Set ``product.quantity`` to the sum of its active variants (flushes, no commit)."""

    db.flush()
    total = db.scalar(
        select(func.coalesce(func.sum(ProductVariant.quantity), 0)).where(
            ProductVariant.product_id == product.id,
            ProductVariant.is_active.is_(True),
        )
    )
    variant_count = db.scalar(select(func.count(ProductVariant.id)).where(ProductVariant.product_id == product.id))
    product.quantity = int(total or 0)
    product.has_variants = bool(variant_count)
    return product.quantity


def create_variant(
    db: Session,
    product: Product,
    *,
    name: str,
    selling_price: Decimal | float | None = None,
    quantity: int = 0,
    sku: str | None = None,
) -> ProductVariant:
    variant = ProductVariant(
        product_id=product.id,
        name=name.strip(),
        sku=sku,
        selling_price=Decimal(str(selling_price)) if selling_price is not None else product.selling_price,
        quantity=max(0, int(quantity)),
        is_active=True,
    )
    db.add(variant)
    recalculate_product_quantity(db, product)
    db.commit()
    db.refresh(variant)
    return variant


def update_variant(
    db: Session,
    variant: ProductVariant,
    *,
    name: str | None = None,
    selling_price: Decimal | float | None = None,
    quantity: int | None = None,
    is_active: bool | None = None,
) -> ProductVariant:
    if name is not None:
        variant.name = name.strip()
    if selling_price is not None:
        variant.selling_price = Decimal(str(selling_price))
    if quantity is not None:
        variant.quantity = max(0, int(quantity))
    if is_active is not None:
        variant.is_active = is_active
    product = db.get(Product, variant.product_id)
    recalculate_product_quantity(db, product)
    db.commit()
    db.refresh(variant)
    return variant


def delete_variant(db: Session, variant: ProductVariant) -> None:
    product = db.get(Product, variant.product_id)
    db.delete(variant)
    recalculate_product_quantity(db, product)
    db.commit()
