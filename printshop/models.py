from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    false,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# SQLite only autoincrements INTEGER primary keys.
IdType = BigInteger().with_variant(Integer(), 'sqlite')


class Base(DeclarativeBase):
    pass


class ProductCategory(str, Enum):
    PACKAGING = 'packaging'
    WIDE_FORMAT = 'wide_format'
    LEAFLETS = 'leaflets'
    FINISHED_PRODUCT = 'finished_product'


class PackagingUnitType(str, Enum):
    BOXED = 'boxed'
    UNITS = 'units'


class JobStatus(str, Enum):
    PENDING = 'pending'
    IN_PROGRESS = 'in_progress'
    ARTWORK_ISSUE = 'artwork_issue'
    CLIENT_APPROVAL = 'client_approval'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class CostType(str, Enum):
    INK = 'ink'
    MATERIAL = 'material'
    LABOR = 'labor'
    OTHER = 'other'


class InvoiceStatus(str, Enum):
    DRAFT = 'draft'
    SENT = 'sent'
    PAID = 'paid'
    OVERDUE = 'overdue'
    CANCELLED = 'cancelled'


class VatRate(str, Enum):
    STANDARD = '23'
    REDUCED = '13.5'
    SECOND_REDUCED = '9'

    @property
    def percent(self) -> Decimal:
        return Decimal(self.value)


def _values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class Customer(Base):
    __tablename__ = 'customers'

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    company: Mapped[str | None] = mapped_column(Text)
    contact_person: Mapped[str | None] = mapped_column(Text)
    email: Mapped[str | None] = mapped_column(Text)
    phone: Mapped[str | None] = mapped_column(Text)
    address: Mapped[str | None] = mapped_column(Text)
    city: Mapped[str | None] = mapped_column(Text)
    postal_code: Mapped[str | None] = mapped_column(String(32))
    country: Mapped[str | None] = mapped_column(Text)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Product(Base):
    __tablename__ = 'products'

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[ProductCategory] = mapped_column(
        SQLEnum(ProductCategory, name='product_category', values_callable=_values), nullable=False
    )
    product_code: Mapped[str | None] = mapped_column(String(64))
    material: Mapped[str | None] = mapped_column(Text)
    thickness: Mapped[str | None] = mapped_column(Text)

    # packaging
    unit_type: Mapped[PackagingUnitType | None] = mapped_column(
        SQLEnum(PackagingUnitType, name='packaging_unit_type', values_callable=_values)
    )
    units_per_box: Mapped[int | None] = mapped_column(Integer)
    box_cost: Mapped[Decimal | None] = mapped_column(Numeric(12, 4))
    unit_cost: Mapped[Decimal | None] = mapped_column(Numeric(14, 6))

    # wide format; finished products also carry a resolved cost_per_sqm
    width_m: Mapped[Decimal | None] = mapped_column(Numeric(10, 3))
    length_m: Mapped[Decimal | None] = mapped_column(Numeric(10, 3))
    roll_cost: Mapped[Decimal | None] = mapped_column(Numeric(12, 4))
    cost_per_sqm: Mapped[Decimal | None] = mapped_column(Numeric(14, 6))

    # leaflets
    cost_per_unit: Mapped[Decimal | None] = mapped_column(Numeric(14, 6))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    components: Mapped[list[FinishedProductComponent]] = relationship(
        foreign_keys='FinishedProductComponent.finished_product_id',
        order_by='FinishedProductComponent.id',
        cascade='all, delete-orphan',
    )


class FinishedProductComponent(Base):
    __tablename__ = 'finished_product_components'
    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_finished_product_components_quantity_positive'),
        CheckConstraint(
            'finished_product_id <> component_product_id', name='ck_finished_product_components_not_self'
        ),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    finished_product_id: Mapped[int] = mapped_column(
        IdType, ForeignKey('products.id', ondelete='CASCADE'), nullable=False
    )
    component_product_id: Mapped[int] = mapped_column(IdType, ForeignKey('products.id'), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(10, 3), nullable=False, default=Decimal('1'))


class Job(Base):
    __tablename__ = 'jobs'

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    customer_name: Mapped[str] = mapped_column(Text, nullable=False)
    product_name: Mapped[str] = mapped_column(Text, nullable=False)
    size: Mapped[str] = mapped_column(Text, nullable=False, default='Various')
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default='0')
    work_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default='0')
    status: Mapped[JobStatus] = mapped_column(
        SQLEnum(JobStatus, name='job_status', values_callable=_values),
        nullable=False,
        default=JobStatus.PENDING,
    )
    total_cost: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False, default=Decimal('0'))
    due_date: Mapped[date | None] = mapped_column(Date)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    items: Mapped[list[JobItem]] = relationship(
        back_populates='job', order_by='JobItem.id', cascade='all, delete-orphan'
    )


class JobItem(Base):
    __tablename__ = 'job_items'
    __table_args__ = (
        CheckConstraint('quantity >= 0', name='ck_job_items_quantity_non_negative'),
        CheckConstraint('work_completed <= quantity', name='ck_job_items_work_completed_within_quantity'),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    job_id: Mapped[int] = mapped_column(IdType, ForeignKey('jobs.id', ondelete='CASCADE'), nullable=False)
    product_id: Mapped[int | None] = mapped_column(IdType, ForeignKey('products.id'))
    product_name: Mapped[str] = mapped_column(Text, nullable=False)
    product_category: Mapped[ProductCategory | None] = mapped_column(
        SQLEnum(ProductCategory, name='product_category', values_callable=_values)
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    work_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default='0')
    is_printed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    width_m: Mapped[Decimal | None] = mapped_column(Numeric(10, 3))
    height_m: Mapped[Decimal | None] = mapped_column(Numeric(10, 3))
    unit_price: Mapped[Decimal] = mapped_column(Numeric(14, 6), nullable=False, default=Decimal('0'))
    total_price: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False, default=Decimal('0'))
    ink_cost_per_unit: Mapped[Decimal | None] = mapped_column(Numeric(12, 6))
    ink_consumption: Mapped[Decimal | None] = mapped_column(Numeric(12, 3))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    job: Mapped[Job] = relationship(back_populates='items')


class CostEntry(Base):
    __tablename__ = 'job_costing'

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    job_id: Mapped[int] = mapped_column(IdType, ForeignKey('jobs.id', ondelete='CASCADE'), nullable=False)
    job_item_id: Mapped[int] = mapped_column(IdType, ForeignKey('job_items.id', ondelete='CASCADE'), nullable=False)
    cost_type: Mapped[CostType] = mapped_column(
        SQLEnum(CostType, name='cost_type', values_callable=_values), nullable=False
    )
    cost_amount: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    units: Mapped[str] = mapped_column(String(32), nullable=False)
    cost_per_unit: Mapped[Decimal] = mapped_column(Numeric(14, 6), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Invoice(Base):
    __tablename__ = 'invoices'
    __table_args__ = (UniqueConstraint('invoice_number', name='uq_invoices_invoice_number'),)

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    invoice_number: Mapped[str] = mapped_column(String(32), nullable=False)
    customer_id: Mapped[int] = mapped_column(IdType, ForeignKey('customers.id'), nullable=False)
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[InvoiceStatus] = mapped_column(
        SQLEnum(InvoiceStatus, name='invoice_status', values_callable=_values),
        nullable=False,
        default=InvoiceStatus.DRAFT,
    )
    vat_rate: Mapped[VatRate] = mapped_column(
        SQLEnum(VatRate, name='vat_rate', values_callable=_values), nullable=False, default=VatRate.STANDARD
    )
    subtotal: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal('0.00'))
    vat_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal('0.00'))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal('0.00'))
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    items: Mapped[list[InvoiceItem]] = relationship(
        back_populates='invoice', order_by='InvoiceItem.id', cascade='all, delete-orphan'
    )


class InvoiceItem(Base):
    __tablename__ = 'invoice_items'

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    invoice_id: Mapped[int] = mapped_column(IdType, ForeignKey('invoices.id', ondelete='CASCADE'), nullable=False)
    product_id: Mapped[int | None] = mapped_column(IdType, ForeignKey('products.id'))
    description: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    is_printed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    width_m: Mapped[Decimal | None] = mapped_column(Numeric(10, 3))
    height_m: Mapped[Decimal | None] = mapped_column(Numeric(10, 3))
    unit_price: Mapped[Decimal] = mapped_column(Numeric(14, 6), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)

    invoice: Mapped[Invoice] = relationship(back_populates='items')
