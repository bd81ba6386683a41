"""
Dashboard & Reports API
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from prodtrack.core import get_db
from prodtrack.core.security import Principal, get_current_principal
from prodtrack.services import ReportService

router = APIRouter(tags=["reports"])


@router.get("/dashboard/stats")
async def dashboard_stats(
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return ReportService.dashboard_stats(db)


@router.get("/reports/production-history")
async def production_history(
    weeks: int = Query(8, ge=1, le=52),
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return ReportService.production_history(db, weeks)
