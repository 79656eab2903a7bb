from __future__ import annotations

import unittest
from decimal import Decimal

from printshop.errors import NotFoundError, ValidationError
from printshop.models import CostType, JobStatus
from printshop.schemas import JobIn, JobItemIn
from printshop.services.cost_ledger_service import (
    create_cost_entry,
    delete_cost_entry,
    get_cost_entry,
    list_costs_for_item,
    list_costs_for_job,
    update_cost_entry,
)
from printshop.services.job_service import create_job, update_job_status
from printshop.services.margin_service import build_margin_report
from tests.sqlite_support import add_boxed_packaging, make_session_factory

INK = {
    'cost_type': 'ink',
    'cost_amount': Decimal('400'),
    'quantity': Decimal('8000'),
    'units': 'ml',
    'cost_per_unit': Decimal('0.05'),
}


class CostLedgerServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()
        box = add_boxed_packaging(self.db)
        self.job = create_job(
            self.db,
            JobIn(
                customer_name='Acme',
                items=[
                    JobItemIn(product_id=box.id, quantity=1000),
                    JobItemIn(product_id=box.id, quantity=10, ink_cost_per_unit=Decimal('0.5')),
                ],
            ),
        )
        self.item, self.other_item = self.job.items

    def tearDown(self) -> None:
        self.db.close()

    def test_create_and_list_entries(self) -> None:
        first = create_cost_entry(self.db, job_id=self.job.id, job_item_id=self.item.id, **INK)
        second = create_cost_entry(
            self.db,
            job_id=self.job.id,
            job_item_id=self.item.id,
            cost_type=CostType.MATERIAL,
            cost_amount=Decimal('200'),
            quantity=Decimal('1000'),
            units='units',
            cost_per_unit=Decimal('0.2'),
            notes='Board stock',
        )
        self.assertEqual(first.cost_type, CostType.INK)
        self.assertEqual([e.id for e in list_costs_for_job(self.db, self.job.id)], [second.id, first.id])
        self.assertEqual(len(list_costs_for_item(self.db, self.item.id)), 2)
        self.assertEqual(list_costs_for_item(self.db, self.other_item.id), [])

    def test_missing_fields_are_reported_together(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            create_cost_entry(self.db, job_id=self.job.id, job_item_id=self.item.id, cost_type='ink', units='  ')
        message = str(ctx.exception)
        for field in ('cost_amount', 'quantity', 'units', 'cost_per_unit'):
            self.assertIn(field, message)

    def test_zero_amount_is_allowed(self) -> None:
        entry = create_cost_entry(self.db, job_id=self.job.id, job_item_id=self.item.id, **{**INK, 'cost_amount': Decimal('0')})
        self.assertEqual(entry.cost_amount, Decimal('0'))

    def test_invalid_cost_type_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            create_cost_entry(self.db, job_id=self.job.id, job_item_id=self.item.id, **{**INK, 'cost_type': 'freight'})

    def test_unknown_job_or_foreign_item_rejected(self) -> None:
        with self.assertRaises(NotFoundError):
            create_cost_entry(self.db, job_id=999, job_item_id=self.item.id, **INK)
        other_job = create_job(self.db, JobIn(customer_name='Other', items=[JobItemIn(product_name='Fee', quantity=1, unit_price=Decimal('1'))]))
        with self.assertRaises(NotFoundError) as ctx:
            create_cost_entry(self.db, job_id=other_job.id, job_item_id=self.item.id, **INK)
        self.assertIn('does not belong', str(ctx.exception))

    def test_update_entry(self) -> None:
        entry = create_cost_entry(self.db, job_id=self.job.id, job_item_id=self.item.id, **INK)
        updated = update_cost_entry(self.db, entry.id, {'cost_amount': Decimal('450'), 'notes': ''})
        self.assertEqual(updated.cost_amount, Decimal('450'))
        self.assertIsNone(updated.notes)

    def test_update_rejects_empty_and_unknown_fields(self) -> None:
        entry = create_cost_entry(self.db, job_id=self.job.id, job_item_id=self.item.id, **INK)
        with self.assertRaises(ValidationError):
            update_cost_entry(self.db, entry.id, {})
        with self.assertRaises(ValidationError):
            update_cost_entry(self.db, entry.id, {'job_id': 2})
        with self.assertRaises(ValidationError):
            update_cost_entry(self.db, entry.id, {'units': ''})
        with self.assertRaises(NotFoundError):
            update_cost_entry(self.db, 999, {'cost_amount': Decimal('1')})

    def test_delete_entry(self) -> None:
        entry = create_cost_entry(self.db, job_id=self.job.id, job_item_id=self.item.id, **INK)
        delete_cost_entry(self.db, entry.id)
        with self.assertRaises(NotFoundError):
            get_cost_entry(self.db, entry.id)
        with self.assertRaises(NotFoundError):
            delete_cost_entry(self.db, entry.id)

    def test_margin_report_reads_ledger_then_legacy(self) -> None:
        create_cost_entry(self.db, job_id=self.job.id, job_item_id=self.item.id, **INK)
        update_job_status(self.db, self.job.id, JobStatus.COMPLETED)

        report = build_margin_report(self.db, ink_cost_per_ml=Decimal('0.05'))

        costs = {row.item_id: (row.cost, row.cost_source) for row in report.items}
        self.assertEqual(costs[self.item.id], (Decimal('400'), 'ledger'))
        self.assertEqual(costs[self.other_item.id], (Decimal('5'), 'legacy'))
        self.assertEqual(report.overall.cost, Decimal('405'))


if __name__ == '__main__':
    unittest.main()
