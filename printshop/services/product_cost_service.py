"""Unit cost derivation for the four product variants.

Every function here is pure: products are plain frozen dataclasses and the
only lookup is the caller-supplied ``product_index`` used to reach the
components of a finished product.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal

from printshop.errors import ConfigurationError, NotFoundError
from printshop.models import PackagingUnitType, ProductCategory

ZERO = Decimal('0')


@dataclass(frozen=True)
class PackagingProduct:
    id: int
    name: str
    unit_type: PackagingUnitType = PackagingUnitType.UNITS
    units_per_box: int | None = None
    box_cost: Decimal | None = None
    unit_cost: Decimal | None = None

    category = ProductCategory.PACKAGING


@dataclass(frozen=True)
class WideFormatProduct:
    id: int
    name: str
    width_m: Decimal | None = None
    length_m: Decimal | None = None
    roll_cost: Decimal | None = None
    cost_per_sqm: Decimal | None = None

    category = ProductCategory.WIDE_FORMAT


@dataclass(frozen=True)
class LeafletsProduct:
    id: int
    name: str
    cost_per_unit: Decimal | None = None

    category = ProductCategory.LEAFLETS


@dataclass(frozen=True)
class Component:
    component_product_id: int
    quantity: Decimal


@dataclass(frozen=True)
class FinishedProduct:
    id: int
    name: str
    components: tuple[Component, ...] = ()

    category = ProductCategory.FINISHED_PRODUCT


ProductVariant = PackagingProduct | WideFormatProduct | LeafletsProduct | FinishedProduct
ProductIndex = Mapping[int, ProductVariant]


def _dec(value: object) -> Decimal | None:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def product_from_row(row, components: Iterable = ()) -> ProductVariant:
    """Build the variant for a persisted ``Product`` row and its component rows."""
    try:
        category = ProductCategory(row.category)
    except ValueError as exc:
        raise ConfigurationError(f'Unsupported product category: {row.category}') from exc
    if category == ProductCategory.PACKAGING:
        unit_type = PackagingUnitType(row.unit_type) if row.unit_type else PackagingUnitType.UNITS
        return PackagingProduct(
            id=row.id,
            name=row.name,
            unit_type=unit_type,
            units_per_box=row.units_per_box,
            box_cost=_dec(row.box_cost),
            unit_cost=_dec(row.unit_cost),
        )
    if category == ProductCategory.WIDE_FORMAT:
        return WideFormatProduct(
            id=row.id,
            name=row.name,
            width_m=_dec(row.width_m),
            length_m=_dec(row.length_m),
            roll_cost=_dec(row.roll_cost),
            cost_per_sqm=_dec(row.cost_per_sqm),
        )
    if category == ProductCategory.LEAFLETS:
        return LeafletsProduct(id=row.id, name=row.name, cost_per_unit=_dec(row.cost_per_unit))
    if category == ProductCategory.FINISHED_PRODUCT:
        return FinishedProduct(
            id=row.id,
            name=row.name,
            components=tuple(
                Component(component_product_id=c.component_product_id, quantity=_dec(c.quantity) or ZERO)
                for c in components
            ),
        )
    raise ConfigurationError(f'Unsupported product category: {row.category}')


def build_product_index(rows: Iterable, component_rows: Iterable = ()) -> dict[int, ProductVariant]:
    components_by_product: dict[int, list] = {}
    for component in component_rows:
        components_by_product.setdefault(component.finished_product_id, []).append(component)
    return {row.id: product_from_row(row, components_by_product.get(row.id, ())) for row in rows}


def packaging_unit_cost(product: PackagingProduct) -> Decimal:
    if product.unit_type == PackagingUnitType.BOXED:
        if product.box_cost is not None and product.units_per_box and product.units_per_box > 0:
            return product.box_cost / Decimal(product.units_per_box)
    return product.unit_cost if product.unit_cost is not None else ZERO


def wide_format_cost_per_sqm(product: WideFormatProduct) -> Decimal:
    if product.cost_per_sqm:
        return product.cost_per_sqm
    if product.roll_cost is None or product.width_m is None or product.length_m is None:
        return ZERO
    area = product.width_m * product.length_m
    if area <= 0:
        return ZERO
    return product.roll_cost / area


def _resolve(product: ProductVariant, product_index: ProductIndex, path: tuple[int, ...]) -> Decimal:
    if isinstance(product, PackagingProduct):
        return packaging_unit_cost(product)
    if isinstance(product, WideFormatProduct):
        return wide_format_cost_per_sqm(product)
    if isinstance(product, LeafletsProduct):
        return product.cost_per_unit if product.cost_per_unit is not None else ZERO
    if isinstance(product, FinishedProduct):
        if product.id in path:
            cycle = ' -> '.join(str(pid) for pid in (*path[path.index(product.id) :], product.id))
            raise ConfigurationError(f'Finished product components form a cycle: {cycle}')
        stack = (*path, product.id)
        total = ZERO
        for component in product.components:
            child = product_index.get(component.component_product_id)
            if child is None:
                raise NotFoundError(
                    f'Component product {component.component_product_id} of {product.name!r} not found'
                )
            total += component.quantity * _resolve(child, product_index, stack)
        return total
    raise ConfigurationError(f'Unsupported product variant: {type(product).__name__}')


def resolve_unit_cost(product: ProductVariant, product_index: ProductIndex | None = None) -> Decimal:
    """Unit cost of ``product``; per square metre for area-priced variants.

    Missing or zero denominators degrade to 0. A finished product whose
    component graph loops back on itself raises ``ConfigurationError``.
    """
    return _resolve(product, product_index or {}, ())


def detect_component_cycle(
    product_id: int | None,
    components: Iterable[Component],
    product_index: ProductIndex,
) -> None:
    """Reject a proposed component list that would make ``product_id`` reachable from itself."""
    candidate = FinishedProduct(id=product_id if product_id is not None else -1, name='', components=tuple(components))
    index = dict(product_index)
    index[candidate.id] = candidate
    _resolve(candidate, index, ())


def derived_costs(product: ProductVariant, product_index: ProductIndex | None = None) -> dict[str, Decimal]:
    """Derived cost columns to store beside the product's own inputs.

    Packaging stores nothing: ``unit_cost`` is an operator input and the boxed
    quotient is resolved on read.
    """
    if isinstance(product, PackagingProduct):
        return {}
    if isinstance(product, WideFormatProduct):
        return {'cost_per_sqm': wide_format_cost_per_sqm(product)}
    if isinstance(product, LeafletsProduct):
        return {'cost_per_unit': product.cost_per_unit if product.cost_per_unit is not None else ZERO}
    if isinstance(product, FinishedProduct):
        return {'cost_per_sqm': resolve_unit_cost(product, product_index)}
    raise ConfigurationError(f'Unsupported product variant: {type(product).__name__}')
