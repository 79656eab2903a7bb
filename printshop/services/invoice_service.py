from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from printshop.config import settings
from printshop.db import unit_of_work
from printshop.errors import NotFoundError, ValidationError
from printshop.models import Customer, Invoice, InvoiceItem, Job, JobItem, JobStatus, VatRate
from printshop.schemas import InvoiceIn, InvoiceItemIn
from printshop.services.invoice_sequence_service import allocate_invoice_number
from printshop.services.job_service import describe_size
from printshop.services.pricing_service import ItemModifiers, price_adhoc_item, price_item
from printshop.services.product_cost_service import ProductVariant
from printshop.services.product_service import load_product_index

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal
    vat_amount: Decimal
    total_amount: Decimal


def compute_invoice_totals(item_totals: Iterable[Decimal], vat_rate: VatRate | str) -> InvoiceTotals:
    # Rounded subtotal and VAT add up to the stored total.
    rate = VatRate(vat_rate).percent
    subtotal = sum((Decimal(str(total)) for total in item_totals), Decimal('0')).quantize(CENT, rounding=ROUND_HALF_UP)
    vat_amount = (subtotal * rate / Decimal('100')).quantize(CENT, rounding=ROUND_HALF_UP)
    return InvoiceTotals(subtotal=subtotal, vat_amount=vat_amount, total_amount=subtotal + vat_amount)


def _build_invoice_item(item_in: InvoiceItemIn, product_index: dict[int, ProductVariant]) -> InvoiceItem:
    product = None
    if item_in.product_id is not None:
        product = product_index.get(item_in.product_id)
        if product is None:
            raise NotFoundError(f'Product {item_in.product_id} not found')

    description = item_in.description or (product.name if product else None)
    if not description:
        raise ValidationError('Items without a product need a description')

    if product is None:
        price = price_adhoc_item(item_in.quantity, item_in.unit_price)
    else:
        price = price_item(
            product,
            item_in.quantity,
            ItemModifiers(is_printed=item_in.is_printed, width_m=item_in.width_m, height_m=item_in.height_m),
            product_index,
        )
    price = price.for_storage()
    return InvoiceItem(
        product_id=item_in.product_id,
        description=description,
        quantity=item_in.quantity,
        is_printed=item_in.is_printed,
        width_m=item_in.width_m,
        height_m=item_in.height_m,
        unit_price=price.unit_price,
        total_price=price.total_price,
    )


def _check_header(db: Session, payload: InvoiceIn) -> VatRate:
    if db.get(Customer, payload.customer_id) is None:
        raise NotFoundError('Customer not found')
    if payload.due_date < payload.issue_date:
        raise ValidationError('Due date cannot be before issue date')
    return payload.vat_rate or VatRate(settings.default_vat_rate)


def list_invoices(db: Session) -> list[tuple[Invoice, Customer]]:
    return db.execute(
        select(Invoice, Customer)
        .join(Customer, Customer.id == Invoice.customer_id)
        .order_by(Invoice.created_at.desc(), Invoice.id.desc())
    ).all()


def get_invoice(db: Session, invoice_id: int) -> Invoice:
    invoice = db.execute(
        select(Invoice).options(selectinload(Invoice.items)).where(Invoice.id == invoice_id)
    ).scalar_one_or_none()
    if invoice is None:
        raise NotFoundError('Invoice not found')
    return invoice


def create_invoice(
    db: Session,
    payload: InvoiceIn,
    *,
    product_index: dict[int, ProductVariant] | None = None,
    today: date | None = None,
) -> Invoice:
    vat_rate = _check_header(db, payload)
    index = product_index if product_index is not None else load_product_index(db)
    items = [_build_invoice_item(item_in, index) for item_in in payload.items]
    totals = compute_invoice_totals((item.total_price for item in items), vat_rate)

    with unit_of_work(db):
        invoice = Invoice(
            invoice_number=allocate_invoice_number(db, day=today),
            customer_id=payload.customer_id,
            issue_date=payload.issue_date,
            due_date=payload.due_date,
            status=payload.status,
            vat_rate=vat_rate,
            subtotal=totals.subtotal,
            vat_amount=totals.vat_amount,
            total_amount=totals.total_amount,
            notes=payload.notes,
        )
        invoice.items = items
        db.add(invoice)
        db.flush()
    logger.info('Created invoice %s (%s) total=%s', invoice.id, invoice.invoice_number, invoice.total_amount)
    return invoice


def update_invoice(
    db: Session,
    invoice_id: int,
    payload: InvoiceIn,
    *,
    product_index: dict[int, ProductVariant] | None = None,
) -> Invoice:
    invoice = get_invoice(db, invoice_id)
    vat_rate = _check_header(db, payload)
    index = product_index if product_index is not None else load_product_index(db)
    items = [_build_invoice_item(item_in, index) for item_in in payload.items]
    totals = compute_invoice_totals((item.total_price for item in items), vat_rate)

    with unit_of_work(db):
        invoice.customer_id = payload.customer_id
        invoice.issue_date = payload.issue_date
        invoice.due_date = payload.due_date
        invoice.status = payload.status
        invoice.vat_rate = vat_rate
        invoice.subtotal = totals.subtotal
        invoice.vat_amount = totals.vat_amount
        invoice.total_amount = totals.total_amount
        invoice.notes = payload.notes
        invoice.items = items
        invoice.updated_at = _now()
        db.flush()
    logger.info('Updated invoice %s (%s)', invoice.id, invoice.invoice_number)
    return invoice


def delete_invoice(db: Session, invoice_id: int) -> None:
    invoice = get_invoice(db, invoice_id)
    with unit_of_work(db):
        db.delete(invoice)
    logger.info('Deleted invoice %s', invoice_id)


def generate_job_from_invoice(db: Session, invoice_id: int) -> Job:
    invoice = get_invoice(db, invoice_id)
    if not invoice.items:
        raise ValidationError('Invoice has no items')
    customer = db.get(Customer, invoice.customer_id)
    if customer is None:
        raise NotFoundError('Customer not found')
    index = load_product_index(db)

    first = invoice.items[0]
    job = Job(
        customer_name=customer.name,
        product_name=first.description,
        size=describe_size(first.width_m, first.height_m),
        quantity=sum(item.quantity for item in invoice.items),
        status=JobStatus.PENDING,
        total_cost=invoice.total_amount,
        due_date=invoice.due_date,
        notes=f'Generated from invoice {invoice.invoice_number}. {invoice.notes or ""}'.strip(),
    )
    # Ad-hoc invoice lines have nothing to produce and are not carried over.
    job.items = [
        JobItem(
            product_id=item.product_id,
            product_name=item.description,
            product_category=index[item.product_id].category if item.product_id in index else None,
            quantity=item.quantity,
            is_printed=item.is_printed,
            width_m=item.width_m,
            height_m=item.height_m,
            unit_price=item.unit_price,
            total_price=item.total_price,
        )
        for item in invoice.items
        if item.product_id is not None
    ]
    with unit_of_work(db):
        db.add(job)
        db.flush()
    logger.info('Generated job %s from invoice %s', job.id, invoice.invoice_number)
    return job
