from __future__ import annotations

import unittest

from printshop.errors import NotFoundError, ValidationError
from printshop.models import Invoice, Job
from printshop.schemas import CustomerIn
from printshop.services.customer_service import (
    create_customer,
    delete_customer,
    get_customer,
    list_customers,
    update_customer,
)
from tests.sqlite_support import DUE_DATE, ISSUE_DATE, make_session_factory


class CustomerServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()

    def tearDown(self) -> None:
        self.db.close()

    def test_list_is_ordered_by_name(self) -> None:
        create_customer(self.db, CustomerIn(name='Zeta Print'))
        create_customer(self.db, CustomerIn(name='Acme Signs'))
        self.assertEqual([c.name for c in list_customers(self.db)], ['Acme Signs', 'Zeta Print'])

    def test_create_strips_name_and_keeps_address(self) -> None:
        customer = create_customer(self.db, CustomerIn(name='  Acme Signs ', city='Leeds', postal_code='LS1 4AP'))
        stored = get_customer(self.db, customer.id)
        self.assertEqual(stored.name, 'Acme Signs')
        self.assertEqual((stored.city, stored.postal_code), ('Leeds', 'LS1 4AP'))

    def test_blank_name_is_rejected(self) -> None:
        with self.assertRaisesRegex(ValidationError, 'Customer name is required'):
            create_customer(self.db, CustomerIn(name='   '))
        self.assertEqual(list_customers(self.db), [])

    def test_update_replaces_fields(self) -> None:
        customer = create_customer(self.db, CustomerIn(name='Acme', email='old@acme.test', phone='0113'))
        update_customer(self.db, customer.id, CustomerIn(name='Acme Ltd', email='new@acme.test'))
        stored = get_customer(self.db, customer.id)
        self.assertEqual((stored.name, stored.email, stored.phone), ('Acme Ltd', 'new@acme.test', None))

    def test_missing_customer_is_not_found(self) -> None:
        with self.assertRaises(NotFoundError):
            get_customer(self.db, 99)
        with self.assertRaises(NotFoundError):
            update_customer(self.db, 99, CustomerIn(name='Ghost'))
        with self.assertRaises(NotFoundError):
            delete_customer(self.db, 99)

    def test_delete_removes_customer(self) -> None:
        customer = create_customer(self.db, CustomerIn(name='Acme'))
        delete_customer(self.db, customer.id)
        self.assertEqual(list_customers(self.db), [])

    def test_delete_refuses_when_jobs_carry_the_name(self) -> None:
        customer = create_customer(self.db, CustomerIn(name='Acme'))
        self.db.add(Job(customer_name='Acme', product_name='Banner'))
        self.db.commit()
        with self.assertRaisesRegex(ValidationError, 'associated jobs'):
            delete_customer(self.db, customer.id)
        self.assertEqual(get_customer(self.db, customer.id).name, 'Acme')

    def test_delete_refuses_when_invoiced(self) -> None:
        customer = create_customer(self.db, CustomerIn(name='Acme'))
        self.db.add(
            Invoice(invoice_number='INV-20240601-001', customer_id=customer.id, issue_date=ISSUE_DATE, due_date=DUE_DATE)
        )
        self.db.commit()
        with self.assertRaisesRegex(ValidationError, 'invoices'):
            delete_customer(self.db, customer.id)


if __name__ == '__main__':
    unittest.main()
