from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from printshop.db import unit_of_work
from printshop.errors import NotFoundError, ValidationError
from printshop.models import Customer, Invoice, Job
from printshop.schemas import CustomerIn

logger = logging.getLogger(__name__)


def list_customers(db: Session) -> list[Customer]:
    return db.execute(select(Customer).order_by(Customer.name.asc(), Customer.id.asc())).scalars().all()


def get_customer(db: Session, customer_id: int) -> Customer:
    customer = db.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError('Customer not found')
    return customer


def _clean_name(name: str | None) -> str:
    name = (name or '').strip()
    if not name:
        raise ValidationError('Customer name is required')
    return name


def create_customer(db: Session, payload: CustomerIn) -> Customer:
    customer = Customer(**{**payload.model_dump(), 'name': _clean_name(payload.name)})
    with unit_of_work(db):
        db.add(customer)
        db.flush()
    logger.info('Created customer %s (%s)', customer.id, customer.name)
    return customer


def update_customer(db: Session, customer_id: int, payload: CustomerIn) -> Customer:
    customer = get_customer(db, customer_id)
    values = {**payload.model_dump(), 'name': _clean_name(payload.name)}
    with unit_of_work(db):
        for field, value in values.items():
            setattr(customer, field, value)
    logger.info('Updated customer %s', customer_id)
    return customer


def delete_customer(db: Session, customer_id: int) -> None:
    customer = get_customer(db, customer_id)
    # Jobs carry the customer by name only.
    has_jobs = db.execute(select(Job.id).where(Job.customer_name == customer.name).limit(1)).first()
    if has_jobs:
        raise ValidationError('Cannot delete customer with associated jobs')
    has_invoices = db.execute(select(Invoice.id).where(Invoice.customer_id == customer_id).limit(1)).first()
    if has_invoices:
        raise ValidationError('Cannot delete customer with invoices')
    with unit_of_work(db):
        db.delete(customer)
    logger.info('Deleted customer %s', customer_id)
