from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from printshop.db import get_db
from printshop.schemas import JobIn, JobItemUpdate, JobStatusIn
from printshop.services.job_service import (
    create_job,
    delete_job,
    get_job,
    list_jobs,
    update_job_item,
    update_job_status,
)
from printshop.services.serializers import job_item_to_dict, job_to_dict

router = APIRouter(prefix='/jobs', tags=['jobs'])


@router.get('')
def jobs_index(db: Session = Depends(get_db)):
    return [job_to_dict(job) for job in list_jobs(db)]


@router.get('/{job_id}')
def job_detail(job_id: int, db: Session = Depends(get_db)):
    return job_to_dict(get_job(db, job_id))


@router.post('', status_code=201)
def job_create(payload: JobIn, db: Session = Depends(get_db)):
    return job_to_dict(create_job(db, payload))


@router.patch('/{job_id}/status')
def job_status_update(job_id: int, payload: JobStatusIn, db: Session = Depends(get_db)):
    return job_to_dict(update_job_status(db, job_id, payload.status))


@router.put('/{job_id}/items/{item_id}')
def job_item_update(job_id: int, item_id: int, payload: JobItemUpdate, db: Session = Depends(get_db)):
    changes = payload.model_dump(include=payload.model_fields_set)
    return job_item_to_dict(update_job_item(db, job_id, item_id, changes))


@router.delete('/{job_id}', status_code=204)
def job_delete(job_id: int, db: Session = Depends(get_db)):
    delete_job(db, job_id)
