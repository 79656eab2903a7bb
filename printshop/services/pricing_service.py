from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from printshop.errors import ConfigurationError, ValidationError
from printshop.services.product_cost_service import (
    FinishedProduct,
    LeafletsProduct,
    PackagingProduct,
    ProductIndex,
    ProductVariant,
    WideFormatProduct,
    resolve_unit_cost,
)

PRINTED_SURCHARGE = Decimal('1.2')
ONE = Decimal('1')

# Scales of job_items.unit_price and job_items.total_price.
UNIT_PRICE_QUANT = Decimal('0.000001')
TOTAL_PRICE_QUANT = Decimal('0.0001')


@dataclass(frozen=True)
class ItemModifiers:
    is_printed: bool = False
    width_m: Decimal | None = None
    height_m: Decimal | None = None


@dataclass(frozen=True)
class ItemPrice:
    unit_price: Decimal
    total_price: Decimal

    def for_storage(self) -> ItemPrice:
        return ItemPrice(
            unit_price=self.unit_price.quantize(UNIT_PRICE_QUANT),
            total_price=self.total_price.quantize(TOTAL_PRICE_QUANT),
        )


def _area(modifiers: ItemModifiers) -> Decimal:
    # Missing or zero dimensions count as 1 m.
    width = Decimal(str(modifiers.width_m)) if modifiers.width_m else ONE
    height = Decimal(str(modifiers.height_m)) if modifiers.height_m else ONE
    return width * height


def _check_quantity(quantity: int | Decimal) -> Decimal:
    qty = Decimal(str(quantity))
    if qty < 0:
        raise ValidationError('Quantity cannot be negative')
    return qty


def price_item(
    product: ProductVariant,
    quantity: int | Decimal,
    modifiers: ItemModifiers | None = None,
    product_index: ProductIndex | None = None,
) -> ItemPrice:
    modifiers = modifiers or ItemModifiers()
    qty = _check_quantity(quantity)
    unit_cost = resolve_unit_cost(product, product_index)

    if isinstance(product, PackagingProduct):
        factor = PRINTED_SURCHARGE if modifiers.is_printed else ONE
        total = qty * unit_cost * factor
    elif isinstance(product, (WideFormatProduct, FinishedProduct)):
        total = qty * _area(modifiers) * unit_cost
    elif isinstance(product, LeafletsProduct):
        total = qty * unit_cost
    else:
        raise ConfigurationError(f'Unsupported product variant: {type(product).__name__}')

    return ItemPrice(unit_price=unit_cost, total_price=total)


def price_adhoc_item(quantity: int | Decimal, unit_price: Decimal | None) -> ItemPrice:
    """Lines without a catalogue product are priced from the caller's unit price."""
    qty = _check_quantity(quantity)
    if unit_price is None:
        raise ValidationError('Unit price is required for items without a product')
    price = Decimal(str(unit_price))
    if price < 0:
        raise ValidationError('Unit price cannot be negative')
    return ItemPrice(unit_price=price, total_price=qty * price)


def reprice_job_item(item, product: ProductVariant | None, product_index: ProductIndex | None = None) -> ItemPrice:
    """Recompute ``unit_price`` and ``total_price`` of a stored line in place."""
    if product is None:
        result = price_adhoc_item(item.quantity, item.unit_price)
    else:
        result = price_item(
            product,
            item.quantity,
            ItemModifiers(is_printed=bool(item.is_printed), width_m=item.width_m, height_m=item.height_m),
            product_index,
        )
    stored = result.for_storage()
    item.unit_price = stored.unit_price
    item.total_price = stored.total_price
    return stored
