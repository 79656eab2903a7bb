from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from printshop.db import get_db
from printshop.models import ProductCategory
from printshop.schemas import FinishedProductIn, ProductIn, ProductUpdate
from printshop.services.product_service import (
    create_finished_product,
    create_product,
    delete_product,
    get_product,
    list_components,
    list_products,
    unit_cost_for,
    update_product,
)
from printshop.services.serializers import product_to_dict

router = APIRouter(prefix='/products', tags=['products'])


@router.get('')
def products_index(category: ProductCategory | None = None, db: Session = Depends(get_db)):
    return [product_to_dict(product) for product in list_products(db, category=category)]


@router.get('/{product_id}')
def product_detail(product_id: int, db: Session = Depends(get_db)):
    return product_to_dict(get_product(db, product_id))


@router.get('/{product_id}/components')
def product_components(product_id: int, db: Session = Depends(get_db)):
    rows = list_components(db, product_id)
    return [{**row, 'quantity': f'{row["quantity"].normalize():f}'} for row in rows]


@router.get('/{product_id}/unit-cost')
def product_unit_cost(product_id: int, db: Session = Depends(get_db)):
    return {'product_id': product_id, 'unit_cost': f'{unit_cost_for(db, product_id).normalize():f}'}


@router.post('', status_code=201)
def product_create(payload: Annotated[ProductIn, Body()], db: Session = Depends(get_db)):
    return product_to_dict(create_product(db, payload))


@router.post('/finished', status_code=201)
def finished_product_create(payload: FinishedProductIn, db: Session = Depends(get_db)):
    return product_to_dict(create_finished_product(db, payload))


@router.put('/{product_id}')
def product_update(product_id: int, payload: ProductUpdate, db: Session = Depends(get_db)):
    # Fields the client sent; components stay ComponentIn models.
    changes = {field: getattr(payload, field) for field in payload.model_fields_set}
    return product_to_dict(update_product(db, product_id, changes))


@router.delete('/{product_id}', status_code=204)
def product_delete(product_id: int, db: Session = Depends(get_db)):
    delete_product(db, product_id)
