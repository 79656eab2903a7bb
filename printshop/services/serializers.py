from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from printshop.models import Customer, CostEntry, Invoice, InvoiceItem, Job, JobItem, Product
from printshop.services.margin_service import CategoryMargins, ItemMargin, JobMargin, MarginReport, MarginSummary

CENT = Decimal('0.01')


def _money(value: Decimal | None) -> str | None:
    if value is None:
        return None
    return str(Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))


def _plain(value: Decimal | None) -> str | None:
    if value is None:
        return None
    return f'{Decimal(value).normalize():f}'


def _enum(value) -> str | None:
    return getattr(value, 'value', value)


def _iso(value) -> str | None:
    return value.isoformat() if value is not None else None


def customer_to_dict(customer: Customer) -> dict:
    return {
        'id': customer.id,
        'name': customer.name,
        'company': customer.company,
        'contact_person': customer.contact_person,
        'email': customer.email,
        'phone': customer.phone,
        'address': customer.address,
        'city': customer.city,
        'postal_code': customer.postal_code,
        'country': customer.country,
        'notes': customer.notes,
        'created_at': _iso(customer.created_at),
    }


def product_to_dict(product: Product) -> dict:
    return {
        'id': product.id,
        'name': product.name,
        'category': _enum(product.category),
        'product_code': product.product_code,
        'material': product.material,
        'thickness': product.thickness,
        'unit_type': _enum(product.unit_type),
        'units_per_box': product.units_per_box,
        'box_cost': _plain(product.box_cost),
        'unit_cost': _plain(product.unit_cost),
        'width_m': _plain(product.width_m),
        'length_m': _plain(product.length_m),
        'roll_cost': _plain(product.roll_cost),
        'cost_per_sqm': _plain(product.cost_per_sqm),
        'cost_per_unit': _plain(product.cost_per_unit),
        'created_at': _iso(product.created_at),
        'updated_at': _iso(product.updated_at),
    }


def job_item_to_dict(item: JobItem) -> dict:
    return {
        'id': item.id,
        'job_id': item.job_id,
        'product_id': item.product_id,
        'product_name': item.product_name,
        'product_category': _enum(item.product_category),
        'quantity': item.quantity,
        'work_completed': item.work_completed,
        'is_printed': bool(item.is_printed),
        'width_m': _plain(item.width_m),
        'height_m': _plain(item.height_m),
        'unit_price': _plain(item.unit_price),
        'total_price': _plain(item.total_price),
        'ink_cost_per_unit': _plain(item.ink_cost_per_unit),
        'ink_consumption': _plain(item.ink_consumption),
    }


def job_to_dict(job: Job, *, include_items: bool = True) -> dict:
    data = {
        'id': job.id,
        'customer_name': job.customer_name,
        'product_name': job.product_name,
        'size': job.size,
        'quantity': job.quantity,
        'work_completed': job.work_completed,
        'status': _enum(job.status),
        'total_cost': _plain(job.total_cost),
        'due_date': _iso(job.due_date),
        'notes': job.notes,
        'created_at': _iso(job.created_at),
        'updated_at': _iso(job.updated_at),
    }
    if include_items:
        data['items'] = [job_item_to_dict(item) for item in job.items]
    return data


def cost_entry_to_dict(entry: CostEntry) -> dict:
    return {
        'id': entry.id,
        'job_id': entry.job_id,
        'job_item_id': entry.job_item_id,
        'cost_type': _enum(entry.cost_type),
        'cost_amount': _plain(entry.cost_amount),
        'quantity': _plain(entry.quantity),
        'units': entry.units,
        'cost_per_unit': _plain(entry.cost_per_unit),
        'notes': entry.notes,
        'created_at': _iso(entry.created_at),
        'updated_at': _iso(entry.updated_at),
    }


def invoice_item_to_dict(item: InvoiceItem) -> dict:
    return {
        'id': item.id,
        'product_id': item.product_id,
        'description': item.description,
        'quantity': item.quantity,
        'is_printed': bool(item.is_printed),
        'width_m': _plain(item.width_m),
        'height_m': _plain(item.height_m),
        'unit_price': _plain(item.unit_price),
        'total_price': _plain(item.total_price),
    }


def invoice_to_dict(invoice: Invoice, *, customer: Customer | None = None, include_items: bool = True) -> dict:
    data = {
        'id': invoice.id,
        'invoice_number': invoice.invoice_number,
        'customer_id': invoice.customer_id,
        'issue_date': _iso(invoice.issue_date),
        'due_date': _iso(invoice.due_date),
        'status': _enum(invoice.status),
        'vat_rate': _enum(invoice.vat_rate),
        'subtotal': _money(invoice.subtotal),
        'vat_amount': _money(invoice.vat_amount),
        'total_amount': _money(invoice.total_amount),
        'notes': invoice.notes,
        'created_at': _iso(invoice.created_at),
    }
    if customer is not None:
        data['customer_name'] = customer.name
        data['customer_company'] = customer.company
    if include_items:
        data['items'] = [invoice_item_to_dict(item) for item in invoice.items]
    return data


def _summary_to_dict(summary: MarginSummary) -> dict:
    return {
        'revenue': _money(summary.revenue),
        'cost': _money(summary.cost),
        'ink_cost': _money(summary.ink_cost),
        'material_cost': _money(summary.material_cost),
        'other_cost': _money(summary.other_cost),
        'margin': _money(summary.margin),
    }


def _job_margin_to_dict(row: JobMargin) -> dict:
    return {
        'job_id': row.job_id,
        'customer_name': row.customer_name,
        'product_name': row.product_name,
        'created_at': _iso(row.created_at),
        **_summary_to_dict(row),
    }


def _item_margin_to_dict(row: ItemMargin) -> dict:
    return {
        'job_id': row.job_id,
        'item_id': row.item_id,
        'product_name': row.product_name,
        'category': _enum(row.category),
        'cost_source': row.cost_source,
        **_summary_to_dict(row),
    }


def _category_to_dict(category: CategoryMargins) -> dict:
    return {
        **_summary_to_dict(category.totals),
        'jobs': [_job_margin_to_dict(row) for row in category.jobs],
        'items': [_item_margin_to_dict(row) for row in category.items],
    }


def margin_report_to_dict(report: MarginReport) -> dict:
    """Rounds money and margins to cents; the report itself keeps exact values."""
    return {
        'overall': _summary_to_dict(report.overall),
        'categories': {_enum(key): _category_to_dict(value) for key, value in report.categories.items()},
        'jobs': [_job_margin_to_dict(row) for row in report.jobs],
        'items': [_item_margin_to_dict(row) for row in report.items],
    }
