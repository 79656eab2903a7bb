from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from printshop.db import get_db
from printshop.schemas import CostEntryIn, CostEntryUpdate
from printshop.services.cost_ledger_service import (
    create_cost_entry,
    delete_cost_entry,
    list_costs_for_item,
    list_costs_for_job,
    update_cost_entry,
)
from printshop.services.serializers import cost_entry_to_dict

router = APIRouter(prefix='/job-costing', tags=['job-costing'])


@router.get('/job/{job_id}')
def costs_for_job(job_id: int, db: Session = Depends(get_db)):
    return [cost_entry_to_dict(entry) for entry in list_costs_for_job(db, job_id)]


@router.get('/job-item/{item_id}')
def costs_for_item(item_id: int, db: Session = Depends(get_db)):
    return [cost_entry_to_dict(entry) for entry in list_costs_for_item(db, item_id)]


@router.post('', status_code=201)
def cost_create(payload: CostEntryIn, db: Session = Depends(get_db)):
    return cost_entry_to_dict(create_cost_entry(db, **payload.model_dump()))


@router.put('/{entry_id}')
def cost_update(entry_id: int, payload: CostEntryUpdate, db: Session = Depends(get_db)):
    changes = payload.model_dump(include=payload.model_fields_set)
    return cost_entry_to_dict(update_cost_entry(db, entry_id, changes))


@router.delete('/{entry_id}', status_code=204)
def cost_delete(entry_id: int, db: Session = Depends(get_db)):
    delete_cost_entry(db, entry_id)
