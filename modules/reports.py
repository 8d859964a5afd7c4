"""
modules/reports.py — Registry Reports
======================================
Summaries built on top of the ledger: registry statistics, the most
recently registered parcels, and the data an ownership certificate is printed
from. Rendering the certificate is left to the presentation layer.
"""

import logging
from datetime import date
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from config import settings
from core.provenance import verify_history
from core.store import store_call, abort
from db.models import AuditLog, Owner, Parcel, TransferRecord
from modules.ledger import get_parcel, get_transfer_history, parcel_to_dict, transfer_to_dict, with_owners
from modules.owners import owner_to_dict

logger = logging.getLogger("landregistry.modules.reports")


async def get_registry_stats(db: AsyncSession) -> dict:
    """
    Counts across the whole registry.

    `completed_transfers` excludes the records written at registration. There is no pending-transfer figure: transfers are
    either recorded or they did not happen.
    """
    total_parcels = await store_call(db.scalar(select(func.count(Parcel.id))), "count parcels")
    total_owners = await store_call(db.scalar(select(func.count(Owner.id))), "count owners")
    completed = await store_call(
        db.scalar(select(func.count(TransferRecord.id)).where(TransferRecord.is_registration.is_(False))),
        "count transfers",
    )
    total_area = await store_call(
        db.scalar(select(func.coalesce(func.sum(Parcel.area_size), 0.0))),
        "sum parcel area",
    )
    return {
        "total_parcels": total_parcels or 0,
        "total_owners": total_owners or 0,
        "completed_transfers": completed or 0,
        "total_area_sq_m": float(total_area or 0.0),
    }


async def get_recent_parcels(db: AsyncSession, limit: int = 5) -> list:
    """The most recently registered parcels, newest first."""
    result = await store_call(
        db.execute(
            with_owners(select(Parcel))
            .order_by(Parcel.created_at.desc(), Parcel.parcel_number.desc())
            .limit(limit)
        ),
        "select recent parcels",
    )
    return [parcel_to_dict(p) for p in result.scalars().all()]


async def build_certificate(db: AsyncSession, parcel_id: str, actor: Optional[str] = None) -> dict:
    """
    Everything an ownership certificate shows for one parcel.

    Issuing a certificate is audited as a READ.
    """
    parcel = await get_parcel(db, parcel_id)
    history = await get_transfer_history(db, parcel_id)
    provenance = verify_history(history)
    if not provenance["valid"]:
        logger.warning(f"Certificate for {parcel.parcel_number} issued over a broken provenance chain")

    try:
        db.add(AuditLog(actor_id=actor or settings.REGISTRY_ADMIN, action="READ", entity="parcel",
                        entity_id=parcel.id, details=f"Certificate issued for {parcel.parcel_number}"))
        await store_call(db.commit(), "commit certificate audit")
    except Exception:
        await abort(db, "audit certificate")
        raise

    return {
        "parcel_number": parcel.parcel_number,
        "location": parcel.location,
        "area_size": parcel.area_size,
        "boundaries": parcel.boundaries,
        "original_owner": owner_to_dict(parcel.original_owner),
        "current_owner": owner_to_dict(parcel.current_owner),
        "first_transfer_date": history[0].transfer_date.isoformat() if history else None,
        "latest_transfer_date": history[-1].transfer_date.isoformat() if history else None,
        "history": [transfer_to_dict(r) for r in history],
        "provenance": provenance,
        "issued_on": date.today().isoformat(),
    }
