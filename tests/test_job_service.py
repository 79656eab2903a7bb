from __future__ import annotations

import unittest
from decimal import Decimal

from printshop.errors import NotFoundError, ValidationError
from printshop.models import CostType, JobStatus, ProductCategory
from printshop.schemas import JobIn, JobItemIn
from printshop.services.cost_ledger_service import create_cost_entry, list_costs_for_job
from printshop.services.job_service import (
    create_job,
    delete_job,
    describe_size,
    get_job,
    list_jobs,
    update_job_item,
    update_job_status,
)
from tests.sqlite_support import add_boxed_packaging, add_vinyl, make_session_factory


class JobServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()
        self.box = add_boxed_packaging(self.db)
        self.vinyl = add_vinyl(self.db)

    def tearDown(self) -> None:
        self.db.close()

    def _create(self, **overrides):
        payload = JobIn(
            customer_name='Acme',
            items=[
                JobItemIn(product_id=self.box.id, quantity=1000, is_printed=True, total_price=Decimal('1')),
                JobItemIn(product_id=self.vinyl.id, quantity=5, width_m=Decimal('2'), height_m=Decimal('3')),
            ],
            **overrides,
        )
        return create_job(self.db, payload)

    def test_create_job_prices_items_server_side(self) -> None:
        job = self._create()
        box_item, vinyl_item = job.items
        self.assertEqual(box_item.total_price, Decimal('110.376'))
        self.assertEqual(box_item.product_category, ProductCategory.PACKAGING)
        self.assertEqual(vinyl_item.total_price, Decimal('90'))
        self.assertEqual(job.total_cost, Decimal('200.376'))
        self.assertEqual(job.quantity, 1005)
        self.assertEqual(job.product_name, 'Mailer box')
        self.assertEqual(job.status, JobStatus.PENDING)

    def test_printed_flag_dropped_for_non_packaging(self) -> None:
        job = create_job(
            self.db,
            JobIn(customer_name='Acme', items=[JobItemIn(product_id=self.vinyl.id, quantity=1, is_printed=True)]),
        )
        self.assertFalse(job.items[0].is_printed)
        self.assertEqual(job.items[0].total_price, Decimal('3'))

    def test_unknown_product_rejected(self) -> None:
        with self.assertRaises(NotFoundError):
            create_job(self.db, JobIn(customer_name='Acme', items=[JobItemIn(product_id=999, quantity=1)]))
        self.assertEqual(list_jobs(self.db), [])

    def test_adhoc_item_needs_name_and_price(self) -> None:
        with self.assertRaises(ValidationError):
            create_job(self.db, JobIn(customer_name='Acme', items=[JobItemIn(quantity=1, unit_price=Decimal('2'))]))
        job = create_job(
            self.db,
            JobIn(customer_name='Acme', items=[JobItemIn(product_name='Design fee', quantity=2, unit_price=Decimal('25'))]),
        )
        self.assertEqual(job.total_cost, Decimal('50'))

    def test_work_completed_cannot_exceed_quantity(self) -> None:
        with self.assertRaises(ValidationError):
            create_job(
                self.db,
                JobIn(customer_name='Acme', items=[JobItemIn(product_id=self.box.id, quantity=5, work_completed=6)]),
            )

    def test_update_item_reprices_and_rolls_up(self) -> None:
        job = self._create()
        vinyl_item = job.items[1]
        update_job_item(self.db, job.id, vinyl_item.id, {'quantity': 10})
        refreshed = get_job(self.db, job.id)
        self.assertEqual(refreshed.items[1].total_price, Decimal('180'))
        self.assertEqual(refreshed.total_cost, Decimal('290.376'))
        self.assertEqual(refreshed.quantity, 1010)

    def test_update_item_progress_does_not_reprice(self) -> None:
        job = self._create()
        item = update_job_item(self.db, job.id, job.items[0].id, {'work_completed': 400, 'ink_cost_per_unit': Decimal('0.01')})
        self.assertEqual(item.total_price, Decimal('110.376'))
        self.assertEqual(get_job(self.db, job.id).work_completed, 400)

    def test_update_item_rejects_bad_changes(self) -> None:
        job = self._create()
        item_id = job.items[0].id
        with self.assertRaises(ValidationError):
            update_job_item(self.db, job.id, item_id, {})
        with self.assertRaises(ValidationError):
            update_job_item(self.db, job.id, item_id, {'work_completed': 5000})
        with self.assertRaises(ValidationError):
            update_job_item(self.db, job.id, item_id, {'unit_price': Decimal('1')})
        with self.assertRaises(NotFoundError):
            update_job_item(self.db, job.id + 1, item_id, {'quantity': 1})

    def test_update_status(self) -> None:
        job = self._create()
        self.assertEqual(update_job_status(self.db, job.id, JobStatus.COMPLETED).status, JobStatus.COMPLETED)
        with self.assertRaises(NotFoundError):
            update_job_status(self.db, 999, JobStatus.COMPLETED)

    def test_delete_job_removes_cost_entries(self) -> None:
        job = self._create()
        create_cost_entry(
            self.db,
            job_id=job.id,
            job_item_id=job.items[0].id,
            cost_type=CostType.INK,
            cost_amount=Decimal('5'),
            quantity=Decimal('100'),
            units='ml',
            cost_per_unit=Decimal('0.05'),
        )
        delete_job(self.db, job.id)
        with self.assertRaises(NotFoundError):
            get_job(self.db, job.id)
        self.assertEqual(list_costs_for_job(self.db, job.id), [])

    def test_describe_size(self) -> None:
        self.assertEqual(describe_size(Decimal('2.000'), Decimal('3.5')), '2m x 3.5m')
        self.assertEqual(describe_size(None, Decimal('3')), 'Various')


if __name__ == '__main__':
    unittest.main()
