"""
Analytics Router

Endpoints:
- GET /analytics/opens - Opens per template and recipient
- GET /analytics/clicks - Clicks per template and recipient
- GET /stats - Dashboard summary
- GET /activities - Recent activity feed
"""

import logging
from typing import List

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models.schemas import OpenBreakdownRow, ClickBreakdownRow, StatsResponse, ActivityItem
from services.analytics import AnalyticsService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Analytics"])


@router.get("/analytics/opens", response_model=List[OpenBreakdownRow])
async def opens_breakdown(db: AsyncSession = Depends(get_db)):
    try:
        return await AnalyticsService(db).opens_breakdown()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching opens: {e}")
        return JSONResponse(status_code=500, content={"error": str(e)})


@router.get("/analytics/clicks", response_model=List[ClickBreakdownRow])
async def clicks_breakdown(db: AsyncSession = Depends(get_db)):
    try:
        return await AnalyticsService(db).clicks_breakdown()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching clicks: {e}")
        return JSONResponse(status_code=500, content={"error": str(e)})


@router.get("/stats", response_model=StatsResponse)
async def dashboard_stats(db: AsyncSession = Depends(get_db)):
    """
    Dashboard summary.

    openRate / clickRate are the percentage of sends with at least one
    open / click, rounded to one decimal, 0 when nothing was sent.
    """
    try:
        return await AnalyticsService(db).stats()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching stats: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch stats"})


@router.get("/activities", response_model=List[ActivityItem])
async def recent_activities(db: AsyncSession = Depends(get_db)):
    """The ten most recent sends, reported as email_sent activities."""
    try:
        return await AnalyticsService(db).activities()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching activities: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch activities"})
