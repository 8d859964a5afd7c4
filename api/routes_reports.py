"""
api/routes_reports.py — Registry Report Endpoints

Endpoints:
    GET /reports/stats                      → Registry statistics
    GET /reports/recent?limit=5             → Recently registered parcels
    GET /reports/certificate/{parcel_id}    → Ownership certificate data (audited)
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from db.session import get_db
from modules.reports import get_registry_stats, get_recent_parcels, build_certificate

router = APIRouter()


@router.get("/stats")
async def registry_stats(db: AsyncSession = Depends(get_db)):
    return await get_registry_stats(db)


@router.get("/recent")
async def recent_parcels(limit: int = Query(5, ge=1, le=100), db: AsyncSession = Depends(get_db)):
    return await get_recent_parcels(db, limit=limit)


@router.get("/certificate/{parcel_id}")
async def ownership_certificate(parcel_id: str, actor: Optional[str] = None, db: AsyncSession = Depends(get_db)):
    return await build_certificate(db, parcel_id, actor=actor)
