from __future__ import annotations

import unittest
from datetime import date
from decimal import Decimal
from unittest.mock import patch

from sqlalchemy.exc import IntegrityError

from printshop.errors import NotFoundError, ValidationError
from printshop.models import Invoice, InvoiceStatus, JobStatus, VatRate
from printshop.schemas import InvoiceIn, InvoiceItemIn
from printshop.services.invoice_sequence_service import allocate_invoice_number
from printshop.services.invoice_service import (
    compute_invoice_totals,
    create_invoice,
    delete_invoice,
    generate_job_from_invoice,
    get_invoice,
    list_invoices,
    update_invoice,
)
from tests.sqlite_support import DUE_DATE, ISSUE_DATE, add_boxed_packaging, add_customer, add_vinyl, make_session_factory

TODAY = date(2024, 6, 1)


class InvoiceTotalsTests(unittest.TestCase):
    def test_standard_rate(self) -> None:
        totals = compute_invoice_totals([Decimal('110.376'), Decimal('90')], VatRate.STANDARD)
        self.assertEqual(totals.subtotal, Decimal('200.38'))
        self.assertEqual(totals.vat_amount, Decimal('46.09'))
        self.assertEqual(totals.total_amount, Decimal('246.47'))

    def test_reduced_rate_from_string(self) -> None:
        totals = compute_invoice_totals([Decimal('100')], '13.5')
        self.assertEqual(totals.vat_amount, Decimal('13.50'))
        self.assertEqual(totals.total_amount, Decimal('113.50'))

    def test_no_items(self) -> None:
        totals = compute_invoice_totals([], VatRate.SECOND_REDUCED)
        self.assertEqual(totals.total_amount, Decimal('0.00'))


class InvoiceServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()
        self.customer = add_customer(self.db)
        self.box = add_boxed_packaging(self.db)
        self.vinyl = add_vinyl(self.db)

    def tearDown(self) -> None:
        self.db.close()

    def _payload(self, **overrides) -> InvoiceIn:
        values = {
            'customer_id': self.customer.id,
            'issue_date': ISSUE_DATE,
            'due_date': DUE_DATE,
            'items': [
                InvoiceItemIn(product_id=self.box.id, quantity=1000, is_printed=True),
                InvoiceItemIn(product_id=self.vinyl.id, quantity=5, width_m=Decimal('2'), height_m=Decimal('3')),
                InvoiceItemIn(description='Artwork', quantity=1, unit_price=Decimal('40')),
            ],
        }
        values.update(overrides)
        return InvoiceIn(**values)

    def test_create_invoice_numbers_and_totals(self) -> None:
        first = create_invoice(self.db, self._payload(), today=TODAY)
        second = create_invoice(self.db, self._payload(), today=TODAY)
        self.assertEqual(first.invoice_number, 'INV-20240601-001')
        self.assertEqual(second.invoice_number, 'INV-20240601-002')
        self.assertEqual(first.vat_rate, VatRate.STANDARD)
        self.assertEqual(first.subtotal, Decimal('240.38'))
        self.assertEqual(first.vat_amount, Decimal('55.29'))
        self.assertEqual(first.total_amount, Decimal('295.67'))
        self.assertEqual([item.description for item in first.items], ['Mailer box', 'Vinyl', 'Artwork'])

    def test_sequence_restarts_each_day(self) -> None:
        create_invoice(self.db, self._payload(), today=TODAY)
        next_day = create_invoice(self.db, self._payload(), today=date(2024, 6, 2))
        self.assertEqual(next_day.invoice_number, 'INV-20240602-001')

    def test_duplicate_number_rejected_by_storage(self) -> None:
        create_invoice(self.db, self._payload(), today=TODAY)
        self.db.add(
            Invoice(
                invoice_number='INV-20240601-001',
                customer_id=self.customer.id,
                issue_date=ISSUE_DATE,
                due_date=DUE_DATE,
            )
        )
        with self.assertRaises(IntegrityError):
            self.db.commit()
        self.db.rollback()
        self.assertEqual(allocate_invoice_number(self.db, day=TODAY), 'INV-20240601-002')

    @patch('printshop.services.invoice_sequence_service.today_utc')
    def test_number_defaults_to_current_utc_day(self, today_mock) -> None:
        today_mock.return_value = date(2024, 12, 31)
        invoice = create_invoice(self.db, self._payload())
        self.assertEqual(invoice.invoice_number, 'INV-20241231-001')

    def test_header_validation(self) -> None:
        with self.assertRaises(NotFoundError):
            create_invoice(self.db, self._payload(customer_id=999), today=TODAY)
        with self.assertRaises(ValidationError):
            create_invoice(self.db, self._payload(due_date=date(2024, 5, 1)), today=TODAY)
        with self.assertRaises(ValidationError):
            create_invoice(self.db, self._payload(items=[InvoiceItemIn(quantity=1, unit_price=Decimal('1'))]), today=TODAY)
        self.assertEqual(list_invoices(self.db), [])

    def test_update_keeps_number_and_replaces_items(self) -> None:
        invoice = create_invoice(self.db, self._payload(), today=TODAY)
        updated = update_invoice(
            self.db,
            invoice.id,
            self._payload(
                vat_rate=VatRate.SECOND_REDUCED,
                status=InvoiceStatus.SENT,
                items=[InvoiceItemIn(description='Artwork', quantity=2, unit_price=Decimal('50'))],
            ),
        )
        self.assertEqual(updated.invoice_number, 'INV-20240601-001')
        self.assertEqual(len(get_invoice(self.db, invoice.id).items), 1)
        self.assertEqual(updated.total_amount, Decimal('109.00'))
        self.assertEqual(updated.status, InvoiceStatus.SENT)

    def test_delete_invoice(self) -> None:
        invoice = create_invoice(self.db, self._payload(), today=TODAY)
        delete_invoice(self.db, invoice.id)
        with self.assertRaises(NotFoundError):
            get_invoice(self.db, invoice.id)

    def test_generate_job_carries_catalogue_items(self) -> None:
        invoice = create_invoice(self.db, self._payload(notes='Rush'), today=TODAY)
        job = generate_job_from_invoice(self.db, invoice.id)
        self.assertEqual(job.status, JobStatus.PENDING)
        self.assertEqual(job.customer_name, 'Acme Signs')
        self.assertEqual(job.quantity, 1006)
        self.assertEqual(job.total_cost, Decimal('295.67'))
        self.assertEqual(job.notes, 'Generated from invoice INV-20240601-001. Rush')
        self.assertEqual([item.product_id for item in job.items], [self.box.id, self.vinyl.id])
        self.assertTrue(job.items[0].is_printed)

    def test_generate_job_for_missing_invoice(self) -> None:
        with self.assertRaises(NotFoundError):
            generate_job_from_invoice(self.db, 999)


if __name__ == '__main__':
    unittest.main()
