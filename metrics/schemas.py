# src/metrics/schemas.py
from pydantic import BaseModel
from typing import List

class MetricsSummary(BaseModel):
    """Headline numbers for the landing page."""
    active_members: int
    active_instructors: int
    latest_initials: List[str]
