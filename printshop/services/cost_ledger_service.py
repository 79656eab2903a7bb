from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from sqlalchemy import select
from sqlalchemy.orm import Session

from printshop.db import unit_of_work
from printshop.errors import NotFoundError, ValidationError
from printshop.models import CostEntry, CostType, Job, JobItem

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('job_id', 'job_item_id', 'cost_type', 'cost_amount', 'quantity', 'units', 'cost_per_unit')
UPDATABLE_FIELDS = ('cost_type', 'cost_amount', 'quantity', 'units', 'cost_per_unit', 'notes')
DECIMAL_FIELDS = ('cost_amount', 'quantity', 'cost_per_unit')


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _is_missing(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _parse_cost_type(value: object) -> CostType:
    try:
        return CostType(value)
    except ValueError as exc:
        allowed = ', '.join(member.value for member in CostType)
        raise ValidationError(f'Invalid cost_type {value!r}; expected one of {allowed}') from exc


def _parse_decimal(value: object, *, field: str) -> Decimal:
    try:
        return value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f'Invalid {field}') from exc


def _ordered(stmt):
    return stmt.order_by(CostEntry.created_at.desc(), CostEntry.id.desc())


def list_costs_for_job(db: Session, job_id: int) -> list[CostEntry]:
    return db.execute(_ordered(select(CostEntry).where(CostEntry.job_id == job_id))).scalars().all()


def list_costs_for_item(db: Session, job_item_id: int) -> list[CostEntry]:
    return db.execute(_ordered(select(CostEntry).where(CostEntry.job_item_id == job_item_id))).scalars().all()


def get_cost_entry(db: Session, entry_id: int) -> CostEntry:
    entry = db.get(CostEntry, entry_id)
    if entry is None:
        raise NotFoundError('Cost not found')
    return entry


def create_cost_entry(
    db: Session,
    *,
    job_id: int | None = None,
    job_item_id: int | None = None,
    cost_type: CostType | str | None = None,
    cost_amount: Decimal | None = None,
    quantity: Decimal | None = None,
    units: str | None = None,
    cost_per_unit: Decimal | None = None,
    notes: str | None = None,
) -> CostEntry:
    values = {
        'job_id': job_id,
        'job_item_id': job_item_id,
        'cost_type': cost_type,
        'cost_amount': cost_amount,
        'quantity': quantity,
        'units': units,
        'cost_per_unit': cost_per_unit,
    }
    missing = [field for field in REQUIRED_FIELDS if _is_missing(values[field])]
    if missing:
        raise ValidationError(f'Missing required fields: {", ".join(missing)}')

    parsed_type = _parse_cost_type(cost_type)
    amounts = {field: _parse_decimal(values[field], field=field) for field in DECIMAL_FIELDS}

    if db.get(Job, job_id) is None:
        raise NotFoundError('Job not found')
    item_exists = db.execute(
        select(JobItem.id).where(JobItem.id == job_item_id, JobItem.job_id == job_id)
    ).scalar_one_or_none()
    if item_exists is None:
        raise NotFoundError('Job item not found or does not belong to the specified job')

    entry = CostEntry(
        job_id=job_id,
        job_item_id=job_item_id,
        cost_type=parsed_type,
        units=str(units).strip(),
        notes=notes or None,
        **amounts,
    )
    with unit_of_work(db):
        db.add(entry)
        db.flush()
    logger.info(
        'Recorded %s cost %s on job %s item %s (entry %s)',
        parsed_type.value,
        entry.cost_amount,
        job_id,
        job_item_id,
        entry.id,
    )
    return entry


def update_cost_entry(db: Session, entry_id: int, changes: dict) -> CostEntry:
    entry = get_cost_entry(db, entry_id)

    unknown = sorted(set(changes) - set(UPDATABLE_FIELDS))
    if unknown:
        raise ValidationError(f'Fields cannot be updated: {", ".join(unknown)}')
    fields: dict[str, object] = {}
    for field in UPDATABLE_FIELDS:
        if field not in changes:
            continue
        value = changes[field]
        if field == 'notes':
            fields[field] = value or None
            continue
        if _is_missing(value):
            raise ValidationError(f'{field} cannot be empty')
        if field == 'cost_type':
            fields[field] = _parse_cost_type(value)
        elif field in DECIMAL_FIELDS:
            fields[field] = _parse_decimal(value, field=field)
        else:
            fields[field] = str(value).strip()
    if not fields:
        raise ValidationError('No valid fields to update')

    with unit_of_work(db):
        for field, value in fields.items():
            setattr(entry, field, value)
        entry.updated_at = _now()
    logger.info('Updated cost entry %s fields=%s', entry_id, sorted(fields))
    return entry


def delete_cost_entry(db: Session, entry_id: int) -> None:
    entry = get_cost_entry(db, entry_id)
    with unit_of_work(db):
        db.delete(entry)
    logger.info('Deleted cost entry %s', entry_id)
