# src/metrics/routes.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from metrics.schemas import MetricsSummary
from metrics.services import MetricsService
from database import get_db

router = APIRouter(prefix="/metrics", tags=["metrics"])

@router.get("/summary", response_model=MetricsSummary)
def get_summary(db: Session = Depends(get_db)):
    """Public landing-page counters."""
    return MetricsService.get_summary(db)
