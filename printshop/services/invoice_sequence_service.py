from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from printshop.config import settings
from printshop.models import Invoice

logger = logging.getLogger(__name__)

SEQUENCE_WIDTH = 3


def today_utc() -> date:
    return datetime.now(tz=timezone.utc).date()


def invoice_number_prefix(day: date, prefix: str = 'INV') -> str:
    return f'{prefix}-{day:%Y%m%d}-'


def parse_sequence(invoice_number: str | None, day: date, prefix: str = 'INV') -> int | None:
    head = invoice_number_prefix(day, prefix)
    if not invoice_number or not invoice_number.startswith(head):
        return None
    tail = invoice_number[len(head) :]
    if not tail.isdigit():
        return None
    return int(tail)


def next_invoice_number(existing_numbers: Iterable[str], day: date, prefix: str = 'INV') -> str:
    """Next ``PREFIX-YYYYMMDD-NNN`` for ``day``; numbers from other days are ignored."""
    sequences = [parse_sequence(number, day, prefix) for number in existing_numbers]
    highest = max((seq for seq in sequences if seq is not None), default=0)
    return f'{invoice_number_prefix(day, prefix)}{highest + 1:0{SEQUENCE_WIDTH}d}'


def allocate_invoice_number(db: Session, *, day: date | None = None, prefix: str | None = None) -> str:
    # Must run in the same transaction as the insert. invoices.invoice_number is
    # UNIQUE, so a concurrent allocation of the same number fails that insert.
    day = day or today_utc()
    prefix = prefix or settings.invoice_number_prefix
    head = invoice_number_prefix(day, prefix)
    existing = db.execute(select(Invoice.invoice_number).where(Invoice.invoice_number.like(f'{head}%'))).scalars().all()
    number = next_invoice_number(existing, day, prefix)
    logger.info('Allocated invoice number %s', number)
    return number
