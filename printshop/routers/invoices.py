from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from printshop.db import get_db
from printshop.models import Customer
from printshop.schemas import InvoiceIn
from printshop.services.invoice_service import (
    create_invoice,
    delete_invoice,
    generate_job_from_invoice,
    get_invoice,
    list_invoices,
    update_invoice,
)
from printshop.services.serializers import invoice_to_dict, job_to_dict

router = APIRouter(prefix='/invoices', tags=['invoices'])


@router.get('')
def invoices_index(db: Session = Depends(get_db)):
    return [
        invoice_to_dict(invoice, customer=customer, include_items=False) for invoice, customer in list_invoices(db)
    ]


@router.get('/{invoice_id}')
def invoice_detail(invoice_id: int, db: Session = Depends(get_db)):
    invoice = get_invoice(db, invoice_id)
    return invoice_to_dict(invoice, customer=db.get(Customer, invoice.customer_id))


@router.post('', status_code=201)
def invoice_create(payload: InvoiceIn, db: Session = Depends(get_db)):
    return invoice_to_dict(create_invoice(db, payload))


@router.put('/{invoice_id}')
def invoice_update(invoice_id: int, payload: InvoiceIn, db: Session = Depends(get_db)):
    return invoice_to_dict(update_invoice(db, invoice_id, payload))


@router.delete('/{invoice_id}', status_code=204)
def invoice_delete(invoice_id: int, db: Session = Depends(get_db)):
    delete_invoice(db, invoice_id)


@router.post('/{invoice_id}/generate-job', status_code=201)
def invoice_generate_job(invoice_id: int, db: Session = Depends(get_db)):
    return job_to_dict(generate_job_from_invoice(db, invoice_id))
