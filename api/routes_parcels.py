"""
api/routes_parcels.py — Land Registry API Endpoints

Endpoints:
    POST /parcels                           → Register a parcel
    GET  /parcels?search=                   → List parcels (by parcel number)
    GET  /parcels/{parcel_id}               → Get one parcel
    POST /parcels/{parcel_id}/transfers     → Transfer ownership
    GET  /parcels/{parcel_id}/history       → Ownership history, oldest first

Values arrive as the user typed them (area "500", date "2024-03-01");
the ledger does the typing and validation. Either body may carry a
`new_owner` instead of an owner id; the owner is then recorded in the same
transaction.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, Union

from db.session import get_db
from modules.ledger import (
    register_parcel, transfer_ownership, list_parcels, get_parcel, get_transfer_history,
    parcel_to_dict, transfer_to_dict,
)

router = APIRouter()


class InlineOwner(BaseModel):
    full_name: Optional[str] = None
    national_id: Optional[str] = None
    contact_number: Optional[str] = None
    address: Optional[str] = None


class ParcelRequest(BaseModel):
    parcel_number: Optional[str] = None
    location: Optional[str] = None
    area_size: Union[float, str, None] = None   # square meters
    boundaries: Optional[str] = None
    original_owner_id: Optional[str] = None
    current_owner_id: Optional[str] = None
    actor: Optional[str] = None
    new_owner: Optional[InlineOwner] = None        # original owner entered on the form


class TransferRequest(BaseModel):
    to_owner_id: Optional[str] = None
    transfer_date: Optional[str] = None          # ISO format, defaults to today
    sale_amount: Union[float, str, None] = None
    notes: Optional[str] = None
    actor: Optional[str] = None
    new_owner: Optional[InlineOwner] = None        # buyer entered on the form


def _inline(owner: Optional[InlineOwner]) -> Optional[dict]:
    return owner.model_dump(exclude_none=True) if owner else None


@router.post("", status_code=201)
async def register_land(body: ParcelRequest, db: AsyncSession = Depends(get_db)):
    parcel = await register_parcel(
        db=db,
        parcel_number=body.parcel_number,
        location=body.location,
        area_size=body.area_size,
        boundaries=body.boundaries,
        original_owner_id=body.original_owner_id,
        current_owner_id=body.current_owner_id,
        actor=body.actor,
        new_owner=_inline(body.new_owner),
    )
    return parcel_to_dict(parcel)


@router.get("")
async def all_parcels(search: Optional[str] = None, db: AsyncSession = Depends(get_db)):
    return [parcel_to_dict(p) for p in await list_parcels(db, search=search)]


@router.get("/{parcel_id}")
async def one_parcel(parcel_id: str, db: AsyncSession = Depends(get_db)):
    return parcel_to_dict(await get_parcel(db, parcel_id))


@router.post("/{parcel_id}/transfers")
async def transfer_land(parcel_id: str, body: TransferRequest, db: AsyncSession = Depends(get_db)):
    parcel = await transfer_ownership(
        db=db,
        parcel_id=parcel_id,
        to_owner_id=body.to_owner_id,
        transfer_date=body.transfer_date,
        sale_amount=body.sale_amount,
        notes=body.notes,
        actor=body.actor,
        new_owner=_inline(body.new_owner),
    )
    return parcel_to_dict(parcel)


@router.get("/{parcel_id}/history")
async def ownership_history(parcel_id: str, db: AsyncSession = Depends(get_db)):
    return [transfer_to_dict(r) for r in await get_transfer_history(db, parcel_id)]
