"""
api/routes_owners.py — Owner API Endpoints

Endpoints:
    POST /owners              → Record a new owner
    GET  /owners              → List all owners (by name)
    GET  /owners/{owner_id}   → Lookup one owner
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from db.session import get_db
from modules.owners import create_owner, list_owners, get_owner, owner_to_dict

router = APIRouter()


class OwnerRequest(BaseModel):
    full_name: str
    national_id: Optional[str] = None
    contact_number: Optional[str] = None
    address: Optional[str] = None
    actor: Optional[str] = None


@router.post("", status_code=201)
async def record_owner(body: OwnerRequest, db: AsyncSession = Depends(get_db)):
    owner = await create_owner(
        db=db,
        full_name=body.full_name,
        national_id=body.national_id,
        contact_number=body.contact_number,
        address=body.address,
        actor=body.actor,
    )
    return owner_to_dict(owner)


@router.get("")
async def all_owners(db: AsyncSession = Depends(get_db)):
    return [owner_to_dict(o) for o in await list_owners(db)]


@router.get("/{owner_id}")
async def one_owner(owner_id: str, db: AsyncSession = Depends(get_db)):
    return owner_to_dict(await get_owner(db, owner_id))
