"""API v1 routes."""

from fastapi import APIRouter

from trial_issues.api.v1 import csv_import, dashboard, issues

router = APIRouter()
router.include_router(issues.router, prefix="/issues", tags=["issues"])
router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
router.include_router(csv_import.router, prefix="/import", tags=["import"])
