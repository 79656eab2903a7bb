"""Revenue, cost and margin rollups over completed jobs.

Costs come from the cost ledger whenever an item has at least one entry.
Items without entries fall back to the legacy per-item ink fields. The
aggregation reads only; it never writes back to storage.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from printshop.config import settings
from printshop.models import CostEntry, CostType, Job, JobStatus, ProductCategory

logger = logging.getLogger(__name__)

ZERO = Decimal('0')
HUNDRED = Decimal('100')
REPORT_CATEGORIES = (ProductCategory.PACKAGING, ProductCategory.WIDE_FORMAT, ProductCategory.LEAFLETS)

COST_SOURCE_LEDGER = 'ledger'
COST_SOURCE_LEGACY = 'legacy'


def _dec(value: object) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _category(value: object) -> ProductCategory | None:
    if value is None:
        return None
    try:
        return ProductCategory(value)
    except ValueError:
        return None


def _is_completed(job) -> bool:
    try:
        return JobStatus(job.status) == JobStatus.COMPLETED
    except ValueError:
        return False


def margin_percent(revenue: Decimal, cost: Decimal) -> Decimal:
    if revenue <= 0:
        return ZERO
    return (revenue - cost) / revenue * HUNDRED


@dataclass(frozen=True)
class CostBreakdown:
    ink: Decimal = ZERO
    material: Decimal = ZERO
    other: Decimal = ZERO
    source: str = COST_SOURCE_LEGACY

    @property
    def total(self) -> Decimal:
        return self.ink + self.material + self.other


def resolve_item_cost(item, ledger_entries: Sequence, *, ink_cost_per_ml: Decimal) -> CostBreakdown:
    """Ledger entries win outright; legacy fields are only read when there are none."""
    if ledger_entries:
        ink = material = other = ZERO
        for entry in ledger_entries:
            amount = _dec(entry.cost_amount)
            try:
                cost_type = CostType(entry.cost_type)
            except ValueError:
                cost_type = CostType.OTHER
            if cost_type == CostType.INK:
                ink += amount
            elif cost_type == CostType.MATERIAL:
                material += amount
            else:
                other += amount
        return CostBreakdown(ink=ink, material=material, other=other, source=COST_SOURCE_LEDGER)

    category = _category(item.product_category)
    ink = ZERO
    if category == ProductCategory.PACKAGING:
        if item.ink_cost_per_unit is not None:
            ink = _dec(item.ink_cost_per_unit) * _dec(item.quantity)
    elif category == ProductCategory.WIDE_FORMAT:
        if item.ink_consumption is not None:
            ink = _dec(item.ink_consumption) * ink_cost_per_ml
    logger.debug('Item %s has no ledger entries; legacy %s ink cost %s', item.id, category, ink)
    return CostBreakdown(ink=ink, source=COST_SOURCE_LEGACY)


@dataclass(frozen=True)
class MarginSummary:
    revenue: Decimal
    cost: Decimal
    ink_cost: Decimal
    material_cost: Decimal
    other_cost: Decimal
    margin: Decimal


@dataclass(frozen=True)
class ItemMargin:
    job_id: int
    item_id: int
    product_name: str | None
    category: ProductCategory | None
    revenue: Decimal
    cost: Decimal
    ink_cost: Decimal
    material_cost: Decimal
    other_cost: Decimal
    margin: Decimal
    cost_source: str


@dataclass(frozen=True)
class JobMargin:
    job_id: int
    customer_name: str | None
    product_name: str | None
    created_at: datetime | None
    revenue: Decimal
    cost: Decimal
    ink_cost: Decimal
    material_cost: Decimal
    other_cost: Decimal
    margin: Decimal


@dataclass(frozen=True)
class CategoryMargins:
    category: ProductCategory
    totals: MarginSummary
    jobs: list[JobMargin]
    items: list[ItemMargin]


@dataclass(frozen=True)
class MarginReport:
    overall: MarginSummary
    categories: dict[ProductCategory, CategoryMargins]
    jobs: list[JobMargin]
    items: list[ItemMargin]


@dataclass
class _Bucket:
    revenue: Decimal = ZERO
    ink: Decimal = ZERO
    material: Decimal = ZERO
    other: Decimal = ZERO

    def add(self, revenue: Decimal, cost: CostBreakdown) -> None:
        self.revenue += revenue
        self.ink += cost.ink
        self.material += cost.material
        self.other += cost.other

    @property
    def cost(self) -> Decimal:
        return self.ink + self.material + self.other

    def summary(self) -> MarginSummary:
        return MarginSummary(
            revenue=self.revenue,
            cost=self.cost,
            ink_cost=self.ink,
            material_cost=self.material,
            other_cost=self.other,
            margin=margin_percent(self.revenue, self.cost),
        )


@dataclass
class _CategoryAccumulator:
    bucket: _Bucket = field(default_factory=_Bucket)
    jobs: list[JobMargin] = field(default_factory=list)
    items: list[ItemMargin] = field(default_factory=list)


def _job_margin(job, bucket: _Bucket) -> JobMargin:
    summary = bucket.summary()
    return JobMargin(
        job_id=job.id,
        customer_name=getattr(job, 'customer_name', None),
        product_name=getattr(job, 'product_name', None),
        created_at=getattr(job, 'created_at', None),
        revenue=summary.revenue,
        cost=summary.cost,
        ink_cost=summary.ink_cost,
        material_cost=summary.material_cost,
        other_cost=summary.other_cost,
        margin=summary.margin,
    )


def _by_margin(rows: list) -> list:
    # sorted() is stable with reverse=True, so ties keep input order.
    return sorted(rows, key=lambda row: row.margin, reverse=True)


def group_entries_by_item(cost_entries: Iterable) -> dict[int, list]:
    grouped: dict[int, list] = {}
    for entry in cost_entries:
        grouped.setdefault(entry.job_item_id, []).append(entry)
    return grouped


def compute_margins(
    jobs: Iterable,
    cost_entries: Iterable | Mapping[int, Sequence],
    *,
    ink_cost_per_ml: Decimal,
) -> MarginReport:
    entries_by_item = cost_entries if isinstance(cost_entries, Mapping) else group_entries_by_item(cost_entries)
    ink_cost_per_ml = _dec(ink_cost_per_ml)

    overall = _Bucket()
    categories = {category: _CategoryAccumulator() for category in REPORT_CATEGORIES}
    job_rows: list[JobMargin] = []
    item_rows: list[ItemMargin] = []

    for job in jobs:
        if not _is_completed(job):
            continue
        job_bucket = _Bucket()
        job_category_buckets = {category: _Bucket() for category in REPORT_CATEGORIES}

        for item in job.items:
            revenue = _dec(item.total_price)
            cost = resolve_item_cost(item, entries_by_item.get(item.id, ()), ink_cost_per_ml=ink_cost_per_ml)
            category = _category(item.product_category)

            item_bucket = _Bucket()
            item_bucket.add(revenue, cost)
            summary = item_bucket.summary()
            item_row = ItemMargin(
                job_id=job.id,
                item_id=item.id,
                product_name=getattr(item, 'product_name', None),
                category=category,
                revenue=summary.revenue,
                cost=summary.cost,
                ink_cost=summary.ink_cost,
                material_cost=summary.material_cost,
                other_cost=summary.other_cost,
                margin=summary.margin,
                cost_source=cost.source,
            )
            item_rows.append(item_row)

            job_bucket.add(revenue, cost)
            overall.add(revenue, cost)
            if category in categories:
                job_category_buckets[category].add(revenue, cost)
                categories[category].bucket.add(revenue, cost)
                categories[category].items.append(item_row)

        job_rows.append(_job_margin(job, job_bucket))
        for category, bucket in job_category_buckets.items():
            if bucket.revenue > 0:
                categories[category].jobs.append(_job_margin(job, bucket))

    return MarginReport(
        overall=overall.summary(),
        categories={
            category: CategoryMargins(
                category=category,
                totals=acc.bucket.summary(),
                jobs=_by_margin(acc.jobs),
                items=_by_margin(acc.items),
            )
            for category, acc in categories.items()
        },
        jobs=_by_margin(job_rows),
        items=item_rows,
    )


def build_margin_report(db: Session, *, ink_cost_per_ml: Decimal | None = None) -> MarginReport:
    jobs = (
        db.execute(
            select(Job)
            .options(selectinload(Job.items))
            .where(Job.status == JobStatus.COMPLETED)
            .order_by(Job.id.asc())
        )
        .scalars()
        .all()
    )
    job_ids = [job.id for job in jobs]
    entries = []
    if job_ids:
        entries = db.execute(select(CostEntry).where(CostEntry.job_id.in_(job_ids))).scalars().all()

    rate = ink_cost_per_ml if ink_cost_per_ml is not None else settings.ink_cost_per_ml
    report = compute_margins(jobs, entries, ink_cost_per_ml=rate)
    logger.info(
        'Margin report over %s completed jobs: revenue=%s cost=%s',
        len(jobs),
        report.overall.revenue,
        report.overall.cost,
    )
    return report
