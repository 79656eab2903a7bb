from __future__ import annotations

import unittest
from decimal import Decimal
from types import SimpleNamespace

from printshop.errors import ValidationError
from printshop.models import PackagingUnitType
from printshop.services.pricing_service import (
    ItemModifiers,
    price_adhoc_item,
    price_item,
    reprice_job_item,
)
from printshop.services.product_cost_service import (
    Component,
    FinishedProduct,
    LeafletsProduct,
    PackagingProduct,
    WideFormatProduct,
)

BOXED = PackagingProduct(
    id=1,
    name='Mailer box',
    unit_type=PackagingUnitType.BOXED,
    units_per_box=500,
    box_cost=Decimal('45.99'),
)
VINYL = WideFormatProduct(id=2, name='Vinyl', width_m=Decimal('1.5'), length_m=Decimal('50'), roll_cost=Decimal('225'))


class PricingServiceTests(unittest.TestCase):
    def test_printed_packaging_carries_surcharge(self) -> None:
        price = price_item(BOXED, 1000, ItemModifiers(is_printed=True))
        self.assertEqual(price.unit_price, Decimal('0.09198'))
        self.assertEqual(price.total_price, Decimal('110.376'))

    def test_plain_packaging_has_no_surcharge(self) -> None:
        price = price_item(BOXED, 1000)
        self.assertEqual(price.total_price, Decimal('91.98'))

    def test_wide_format_scales_by_area(self) -> None:
        price = price_item(VINYL, 5, ItemModifiers(width_m=Decimal('2'), height_m=Decimal('3')))
        self.assertEqual(price.unit_price, Decimal('3'))
        self.assertEqual(price.total_price, Decimal('90'))

    def test_missing_dimension_counts_as_one_metre(self) -> None:
        price = price_item(VINYL, 2, ItemModifiers(width_m=Decimal('2')))
        self.assertEqual(price.total_price, Decimal('12'))

    def test_printed_flag_ignored_outside_packaging(self) -> None:
        leaflets = LeafletsProduct(id=3, name='A5', cost_per_unit=Decimal('0.04'))
        price = price_item(leaflets, 250, ItemModifiers(is_printed=True))
        self.assertEqual(price.total_price, Decimal('10'))

    def test_finished_product_priced_per_area(self) -> None:
        index = {2: VINYL}
        kit = FinishedProduct(id=4, name='Kit', components=(Component(2, Decimal('2')),))
        price = price_item(kit, 3, ItemModifiers(width_m=Decimal('1'), height_m=Decimal('2')), index)
        self.assertEqual(price.unit_price, Decimal('6'))
        self.assertEqual(price.total_price, Decimal('36'))

    def test_zero_quantity_prices_to_zero(self) -> None:
        self.assertEqual(price_item(BOXED, 0, ItemModifiers(is_printed=True)).total_price, Decimal('0'))

    def test_negative_quantity_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            price_item(BOXED, -1)

    def test_adhoc_item_requires_unit_price(self) -> None:
        with self.assertRaises(ValidationError):
            price_adhoc_item(2, None)
        self.assertEqual(price_adhoc_item(2, Decimal('7.5')).total_price, Decimal('15.0'))

    def test_reprice_job_item_stores_quantized_values(self) -> None:
        item = SimpleNamespace(quantity=1000, is_printed=True, width_m=None, height_m=None, unit_price=None, total_price=None)
        stored = reprice_job_item(item, BOXED)
        self.assertEqual(item.unit_price, Decimal('0.091980'))
        self.assertEqual(item.total_price, Decimal('110.3760'))
        self.assertEqual(stored.total_price, item.total_price)


if __name__ == '__main__':
    unittest.main()
