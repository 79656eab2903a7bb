from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from printshop.db import get_db
from printshop.services.margin_service import build_margin_report
from printshop.services.serializers import margin_report_to_dict

router = APIRouter(prefix='/reports', tags=['reports'])


@router.get('/margins')
def margins(
    ink_cost_per_ml: Decimal | None = Query(default=None, ge=0),
    db: Session = Depends(get_db),
):
    return margin_report_to_dict(build_margin_report(db, ink_cost_per_ml=ink_cost_per_ml))
