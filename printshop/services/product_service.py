from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from printshop.db import unit_of_work
from printshop.errors import NotFoundError, ValidationError
from printshop.models import FinishedProductComponent, InvoiceItem, JobItem, Product, ProductCategory
from printshop.schemas import FinishedProductIn
from printshop.services.product_cost_service import (
    Component,
    FinishedProduct,
    ProductVariant,
    build_product_index,
    derived_costs,
    detect_component_cycle,
    product_from_row,
    resolve_unit_cost,
)

logger = logging.getLogger(__name__)

COMMON_FIELDS = {'name', 'product_code', 'material'}
FIELDS_BY_CATEGORY: dict[ProductCategory, set[str]] = {
    ProductCategory.PACKAGING: COMMON_FIELDS | {'unit_type', 'units_per_box', 'box_cost', 'unit_cost'},
    ProductCategory.WIDE_FORMAT: COMMON_FIELDS | {'width_m', 'length_m', 'roll_cost', 'cost_per_sqm'},
    ProductCategory.LEAFLETS: COMMON_FIELDS | {'thickness', 'cost_per_unit'},
    ProductCategory.FINISHED_PRODUCT: COMMON_FIELDS | {'components'},
}
ROLL_INPUTS = {'width_m', 'length_m', 'roll_cost'}


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def load_product_index(db: Session) -> dict[int, ProductVariant]:
    products = db.execute(select(Product)).scalars().all()
    components = db.execute(select(FinishedProductComponent)).scalars().all()
    return build_product_index(products, components)


def list_products(db: Session, *, category: ProductCategory | None = None) -> list[Product]:
    stmt = select(Product).order_by(Product.name.asc(), Product.id.asc())
    if category is not None:
        stmt = stmt.where(Product.category == category)
    return db.execute(stmt).scalars().all()


def get_product(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if product is None:
        raise NotFoundError('Product not found')
    return product


def list_components(db: Session, product_id: int) -> list[dict]:
    product = get_product(db, product_id)
    if product.category != ProductCategory.FINISHED_PRODUCT:
        raise ValidationError('Not a finished product')
    rows = db.execute(
        select(FinishedProductComponent, Product.name)
        .join(Product, Product.id == FinishedProductComponent.component_product_id)
        .where(FinishedProductComponent.finished_product_id == product_id)
        .order_by(FinishedProductComponent.id.asc())
    ).all()
    return [
        {
            'id': component.id,
            'finished_product_id': component.finished_product_id,
            'component_product_id': component.component_product_id,
            'component_name': component_name,
            'quantity': component.quantity,
        }
        for component, component_name in rows
    ]


def unit_cost_for(db: Session, product_id: int) -> Decimal:
    index = load_product_index(db)
    product = index.get(product_id)
    if product is None:
        raise NotFoundError('Product not found')
    return resolve_unit_cost(product, index)


def _merge_components(components) -> list[Component]:
    # Adding the same component twice accumulates its quantity.
    merged: dict[int, Decimal] = {}
    for component in components:
        merged[component.component_product_id] = merged.get(component.component_product_id, Decimal('0')) + Decimal(
            str(component.quantity)
        )
    return [Component(component_product_id=pid, quantity=qty) for pid, qty in merged.items()]


def _check_components_exist(components: list[Component], index: dict[int, ProductVariant]) -> None:
    missing = [str(c.component_product_id) for c in components if c.component_product_id not in index]
    if missing:
        raise NotFoundError(f'Component products not found: {", ".join(missing)}')


def _apply_derived_costs(row: Product, index: dict[int, ProductVariant]) -> None:
    for field, value in derived_costs(index[row.id], index).items():
        setattr(row, field, value)


def _refresh_finished_costs(db: Session) -> None:
    # Stored cost_per_sqm of composites mirrors their resolved cost for listings.
    index = load_product_index(db)
    for row in db.execute(
        select(Product).where(Product.category == ProductCategory.FINISHED_PRODUCT)
    ).scalars():
        row.cost_per_sqm = resolve_unit_cost(index[row.id], index)


def create_product(db: Session, payload) -> Product:
    if isinstance(payload, FinishedProductIn):
        return create_finished_product(db, payload)

    values = payload.model_dump(exclude={'category'})
    row = Product(category=ProductCategory(payload.category), **values)
    for field, value in derived_costs(product_from_row(row)).items():
        setattr(row, field, value)
    with unit_of_work(db):
        db.add(row)
        db.flush()
    logger.info('Created %s product %s (%s)', row.category.value, row.id, row.name)
    return row


def create_finished_product(db: Session, payload: FinishedProductIn) -> Product:
    index = load_product_index(db)
    components = _merge_components(payload.components)
    _check_components_exist(components, index)
    detect_component_cycle(None, components, index)
    cost = resolve_unit_cost(FinishedProduct(id=-1, name=payload.name, components=tuple(components)), index)

    row = Product(
        name=payload.name,
        category=ProductCategory.FINISHED_PRODUCT,
        product_code=payload.product_code,
        material=payload.material or 'Mixed',
        cost_per_sqm=cost,
    )
    row.components = [
        FinishedProductComponent(component_product_id=c.component_product_id, quantity=c.quantity) for c in components
    ]
    with unit_of_work(db):
        db.add(row)
        db.flush()
    logger.info('Created finished product %s (%s) with %s components', row.id, row.name, len(components))
    return row


def update_product(db: Session, product_id: int, changes: dict) -> Product:
    if not changes:
        raise ValidationError('No fields to update')
    row = get_product(db, product_id)
    allowed = FIELDS_BY_CATEGORY[row.category]
    rejected = sorted(set(changes) - allowed)
    if rejected:
        raise ValidationError(f'Fields not valid for {row.category.value} products: {", ".join(rejected)}')
    if 'name' in changes and not changes['name']:
        raise ValidationError('Product name cannot be empty')

    merged: list[Component] | None = None
    if changes.get('components') is not None:
        merged = _merge_components(changes['components'])
        if not merged:
            raise ValidationError('A finished product needs at least one component')
        current_index = load_product_index(db)
        _check_components_exist(merged, current_index)
        detect_component_cycle(row.id, merged, current_index)

    with unit_of_work(db):
        for field, value in changes.items():
            if field != 'components':
                setattr(row, field, value)
        if ROLL_INPUTS & changes.keys() and 'cost_per_sqm' not in changes:
            row.cost_per_sqm = None
        if merged is not None:
            row.components = [
                FinishedProductComponent(component_product_id=c.component_product_id, quantity=c.quantity)
                for c in merged
            ]
        row.updated_at = _now()
        db.flush()

        _apply_derived_costs(row, load_product_index(db))
        _refresh_finished_costs(db)
    logger.info('Updated product %s fields=%s', row.id, sorted(changes))
    return row


def delete_product(db: Session, product_id: int) -> None:
    row = get_product(db, product_id)
    used_as_component = db.execute(
        select(FinishedProductComponent.id).where(FinishedProductComponent.component_product_id == product_id).limit(1)
    ).first()
    if used_as_component:
        raise ValidationError('Product is a component of a finished product')
    used_by_job = db.execute(select(JobItem.id).where(JobItem.product_id == product_id).limit(1)).first()
    used_by_invoice = db.execute(select(InvoiceItem.id).where(InvoiceItem.product_id == product_id).limit(1)).first()
    if used_by_job or used_by_invoice:
        raise ValidationError('Product is referenced by existing jobs or invoices')
    with unit_of_work(db):
        db.delete(row)
    logger.info('Deleted product %s', product_id)
