from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from printshop.models import CostType, InvoiceStatus, JobStatus, PackagingUnitType, ProductCategory, VatRate


class Payload(BaseModel):
    # Unknown keys are rejected.
    model_config = ConfigDict(extra='forbid')


# ---- Customers ----
class CustomerIn(Payload):
    name: str = Field(..., min_length=1, max_length=256)
    company: str | None = None
    contact_person: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    postal_code: str | None = Field(default=None, max_length=32)
    country: str | None = None
    notes: str | None = None


# ---- Products ----
class PackagingProductIn(Payload):
    category: Literal['packaging']
    name: str = Field(..., min_length=1, max_length=256)
    product_code: str | None = Field(default=None, max_length=64)
    material: str | None = None
    unit_type: PackagingUnitType = PackagingUnitType.UNITS
    units_per_box: int | None = Field(default=None, ge=0)
    box_cost: Decimal | None = Field(default=None, ge=0)
    unit_cost: Decimal | None = Field(default=None, ge=0)


class WideFormatProductIn(Payload):
    category: Literal['wide_format']
    name: str = Field(..., min_length=1, max_length=256)
    product_code: str | None = Field(default=None, max_length=64)
    material: str | None = None
    width_m: Decimal | None = Field(default=None, ge=0)
    length_m: Decimal | None = Field(default=None, ge=0)
    roll_cost: Decimal | None = Field(default=None, ge=0)
    cost_per_sqm: Decimal | None = Field(default=None, ge=0)


class LeafletsProductIn(Payload):
    category: Literal['leaflets']
    name: str = Field(..., min_length=1, max_length=256)
    product_code: str | None = Field(default=None, max_length=64)
    material: str | None = None
    thickness: str | None = None
    cost_per_unit: Decimal | None = Field(default=None, ge=0)


class ComponentIn(Payload):
    component_product_id: int
    quantity: Decimal = Field(default=Decimal('1'), gt=0)


class FinishedProductIn(Payload):
    category: Literal['finished_product'] = 'finished_product'
    name: str = Field(..., min_length=1, max_length=256)
    product_code: str | None = Field(default=None, max_length=64)
    material: str | None = None
    components: list[ComponentIn] = Field(..., min_length=1)


ProductIn = Annotated[
    PackagingProductIn | WideFormatProductIn | LeafletsProductIn | FinishedProductIn,
    Field(discriminator='category'),
]


class ProductUpdate(Payload):
    name: str | None = Field(default=None, min_length=1, max_length=256)
    product_code: str | None = Field(default=None, max_length=64)
    material: str | None = None
    thickness: str | None = None
    unit_type: PackagingUnitType | None = None
    units_per_box: int | None = Field(default=None, ge=0)
    box_cost: Decimal | None = Field(default=None, ge=0)
    unit_cost: Decimal | None = Field(default=None, ge=0)
    width_m: Decimal | None = Field(default=None, ge=0)
    length_m: Decimal | None = Field(default=None, ge=0)
    roll_cost: Decimal | None = Field(default=None, ge=0)
    cost_per_sqm: Decimal | None = Field(default=None, ge=0)
    cost_per_unit: Decimal | None = Field(default=None, ge=0)
    components: list[ComponentIn] | None = None


# ---- Jobs ----
class JobItemIn(Payload):
    product_id: int | None = None
    product_name: str | None = None
    product_category: ProductCategory | None = None
    quantity: int = Field(..., ge=0)
    is_printed: bool = False
    width_m: Decimal | None = Field(default=None, ge=0)
    height_m: Decimal | None = Field(default=None, ge=0)
    unit_price: Decimal | None = Field(default=None, ge=0)
    # Ignored; prices are recomputed from the catalogue.
    total_price: Decimal | None = None
    work_completed: int | None = Field(default=None, ge=0)
    ink_cost_per_unit: Decimal | None = Field(default=None, ge=0)
    ink_consumption: Decimal | None = Field(default=None, ge=0)


class JobIn(Payload):
    customer_name: str = Field(..., min_length=1)
    items: list[JobItemIn] = Field(..., min_length=1)
    status: JobStatus = JobStatus.PENDING
    due_date: date | None = None
    notes: str | None = None


class JobStatusIn(Payload):
    status: JobStatus


class JobItemUpdate(Payload):
    work_completed: int | None = Field(default=None, ge=0)
    ink_cost_per_unit: Decimal | None = Field(default=None, ge=0)
    ink_consumption: Decimal | None = Field(default=None, ge=0)
    quantity: int | None = Field(default=None, ge=0)
    is_printed: bool | None = None
    width_m: Decimal | None = Field(default=None, ge=0)
    height_m: Decimal | None = Field(default=None, ge=0)


# ---- Cost ledger ----
class CostEntryIn(Payload):
    # Required fields are checked by the ledger service.
    job_id: int | None = None
    job_item_id: int | None = None
    cost_type: CostType | None = None
    cost_amount: Decimal | None = None
    quantity: Decimal | None = None
    units: str | None = None
    cost_per_unit: Decimal | None = None
    notes: str | None = None


class CostEntryUpdate(Payload):
    cost_type: CostType | None = None
    cost_amount: Decimal | None = None
    quantity: Decimal | None = None
    units: str | None = None
    cost_per_unit: Decimal | None = None
    notes: str | None = None


# ---- Invoices ----
class InvoiceItemIn(Payload):
    product_id: int | None = None
    description: str | None = None
    quantity: int = Field(..., ge=0)
    is_printed: bool = False
    width_m: Decimal | None = Field(default=None, ge=0)
    height_m: Decimal | None = Field(default=None, ge=0)
    unit_price: Decimal | None = Field(default=None, ge=0)
    total_price: Decimal | None = None


class InvoiceIn(Payload):
    customer_id: int
    issue_date: date
    due_date: date
    vat_rate: VatRate | None = None
    status: InvoiceStatus = InvoiceStatus.DRAFT
    notes: str | None = None
    items: list[InvoiceItemIn] = Field(..., min_length=1)
