from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from printshop.db import get_db
from printshop.schemas import CustomerIn
from printshop.services.customer_service import (
    create_customer,
    delete_customer,
    get_customer,
    list_customers,
    update_customer,
)
from printshop.services.serializers import customer_to_dict

router = APIRouter(prefix='/customers', tags=['customers'])


@router.get('')
def customers_index(db: Session = Depends(get_db)):
    return [customer_to_dict(customer) for customer in list_customers(db)]


@router.get('/{customer_id}')
def customer_detail(customer_id: int, db: Session = Depends(get_db)):
    return customer_to_dict(get_customer(db, customer_id))


@router.post('', status_code=201)
def customer_create(payload: CustomerIn, db: Session = Depends(get_db)):
    return customer_to_dict(create_customer(db, payload))


@router.put('/{customer_id}')
def customer_update(customer_id: int, payload: CustomerIn, db: Session = Depends(get_db)):
    return customer_to_dict(update_customer(db, customer_id, payload))


@router.delete('/{customer_id}', status_code=204)
def customer_delete(customer_id: int, db: Session = Depends(get_db)):
    delete_customer(db, customer_id)
