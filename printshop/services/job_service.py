from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from printshop.db import unit_of_work
from printshop.errors import NotFoundError, ValidationError
from printshop.models import CostEntry, Job, JobItem, JobStatus, ProductCategory
from printshop.schemas import JobIn, JobItemIn
from printshop.services.pricing_service import reprice_job_item
from printshop.services.product_cost_service import ProductVariant
from printshop.services.product_service import load_product_index

logger = logging.getLogger(__name__)

PRICING_FIELDS = {'quantity', 'width_m', 'height_m', 'is_printed'}
ITEM_UPDATE_FIELDS = PRICING_FIELDS | {'work_completed', 'ink_cost_per_unit', 'ink_consumption'}


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def describe_size(width_m: Decimal | None, height_m: Decimal | None) -> str:
    if width_m and height_m:
        return f'{width_m.normalize():f}m x {height_m.normalize():f}m'
    return 'Various'


def _refresh_job_rollups(job: Job) -> None:
    job.quantity = sum(item.quantity or 0 for item in job.items)
    job.work_completed = sum(item.work_completed or 0 for item in job.items)
    job.total_cost = sum((item.total_price or Decimal('0') for item in job.items), Decimal('0'))


def build_job_item(item_in: JobItemIn, product_index: dict[int, ProductVariant]) -> JobItem:
    product = None
    if item_in.product_id is not None:
        product = product_index.get(item_in.product_id)
        if product is None:
            raise NotFoundError(f'Product {item_in.product_id} not found')

    product_name = item_in.product_name or (product.name if product else None)
    if not product_name:
        raise ValidationError('Items without a product need a product name')

    category = product.category if product else item_in.product_category
    work_completed = item_in.work_completed or 0
    if work_completed > item_in.quantity:
        raise ValidationError('Work completed cannot exceed item quantity')

    item = JobItem(
        product_id=item_in.product_id,
        product_name=product_name,
        product_category=category,
        quantity=item_in.quantity,
        work_completed=work_completed,
        is_printed=item_in.is_printed and category == ProductCategory.PACKAGING,
        width_m=item_in.width_m,
        height_m=item_in.height_m,
        unit_price=item_in.unit_price,
        ink_cost_per_unit=item_in.ink_cost_per_unit,
        ink_consumption=item_in.ink_consumption,
    )
    reprice_job_item(item, product, product_index)
    return item


def list_jobs(db: Session) -> list[Job]:
    return (
        db.execute(select(Job).options(selectinload(Job.items)).order_by(Job.created_at.desc(), Job.id.desc()))
        .scalars()
        .all()
    )


def get_job(db: Session, job_id: int) -> Job:
    job = db.execute(select(Job).options(selectinload(Job.items)).where(Job.id == job_id)).scalar_one_or_none()
    if job is None:
        raise NotFoundError('Job not found')
    return job


def create_job(db: Session, payload: JobIn, *, product_index: dict[int, ProductVariant] | None = None) -> Job:
    index = product_index if product_index is not None else load_product_index(db)
    items = [build_job_item(item_in, index) for item_in in payload.items]

    first = items[0]
    job = Job(
        customer_name=payload.customer_name,
        product_name=first.product_name or 'Multiple Products',
        size=describe_size(first.width_m, first.height_m),
        status=payload.status,
        due_date=payload.due_date,
        notes=payload.notes,
    )
    job.items = items
    _refresh_job_rollups(job)
    with unit_of_work(db):
        db.add(job)
        db.flush()
    logger.info('Created job %s for %s with %s items total=%s', job.id, job.customer_name, len(items), job.total_cost)
    return job


def update_job_status(db: Session, job_id: int, status: JobStatus) -> Job:
    job = get_job(db, job_id)
    with unit_of_work(db):
        job.status = JobStatus(status)
        job.updated_at = _now()
    logger.info('Job %s status -> %s', job_id, job.status.value)
    return job


def update_job_item(
    db: Session,
    job_id: int,
    item_id: int,
    changes: dict,
    *,
    product_index: dict[int, ProductVariant] | None = None,
) -> JobItem:
    item = db.execute(select(JobItem).where(JobItem.id == item_id, JobItem.job_id == job_id)).scalar_one_or_none()
    if item is None:
        raise NotFoundError('Job item not found')

    fields = {key: value for key, value in changes.items() if key in ITEM_UPDATE_FIELDS}
    unknown = sorted(set(changes) - ITEM_UPDATE_FIELDS)
    if unknown:
        raise ValidationError(f'Unknown fields: {", ".join(unknown)}')
    if not fields:
        raise ValidationError('No fields to update')
    for key in ('quantity', 'is_printed', 'work_completed'):
        if key in fields and fields[key] is None:
            raise ValidationError(f'{key} cannot be null')

    quantity = fields.get('quantity', item.quantity)
    work_completed = fields.get('work_completed', item.work_completed) or 0
    if work_completed > quantity:
        raise ValidationError('Work completed cannot exceed item quantity')

    product = None
    if PRICING_FIELDS & fields.keys() and item.product_id is not None:
        index = product_index if product_index is not None else load_product_index(db)
        product = index.get(item.product_id)
        if product is None:
            raise NotFoundError(f'Product {item.product_id} not found')
    else:
        index = product_index

    job = get_job(db, job_id)
    with unit_of_work(db):
        for key, value in fields.items():
            setattr(item, key, value)
        if item.product_category != ProductCategory.PACKAGING:
            item.is_printed = False
        if PRICING_FIELDS & fields.keys():
            reprice_job_item(item, product, index)
        item.updated_at = _now()
        _refresh_job_rollups(job)
        job.updated_at = _now()
    logger.info('Updated job item %s on job %s fields=%s', item_id, job_id, sorted(fields))
    return item


def delete_job(db: Session, job_id: int) -> None:
    job = get_job(db, job_id)
    with unit_of_work(db):
        db.execute(delete(CostEntry).where(CostEntry.job_id == job_id))
        db.delete(job)
    logger.info('Deleted job %s', job_id)
