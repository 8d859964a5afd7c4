"""
modules/owners.py — Owner Records
==================================
People who can hold land. Owners are created standalone or inline while
registering / transferring a parcel, and are never edited or deleted here.
"""

import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from config import settings
from core.crypto import crypto_engine
from core.errors import NotFoundError
from core.store import store_call, abort
from core.validation import require_text, optional_text
from db.models import Owner, AuditLog

logger = logging.getLogger("landregistry.modules.owners")


async def stage_owner(
    db: AsyncSession,
    full_name: str,
    national_id: Optional[str] = None,
    contact_number: Optional[str] = None,
    address: Optional[str] = None,
    actor: Optional[str] = None,
) -> Owner:
    """
    Add an owner and its audit entry to the session without committing.

    Used on its own by create_owner, and inside the parcel registration /
    transfer transaction when the owner is entered inline.
    """
    full_name = require_text(full_name, "full_name")
    actor = actor or settings.REGISTRY_ADMIN

    owner = Owner(
        full_name=full_name,
        national_id_encrypted=crypto_engine.encrypt_optional(optional_text(national_id)),
        contact_number=optional_text(contact_number),
        address=optional_text(address),
    )
    db.add(owner)
    await store_call(db.flush(), "insert owner")
    db.add(AuditLog(actor_id=actor, action="WRITE", entity="owner",
                    entity_id=owner.id, details=f"Recorded owner {full_name}"))
    return owner


async def create_owner(
    db: AsyncSession,
    full_name: str,
    national_id: Optional[str] = None,
    contact_number: Optional[str] = None,
    address: Optional[str] = None,
    actor: Optional[str] = None,
) -> Owner:
    """Record a new owner. The national ID is encrypted before it is stored."""
    full_name = require_text(full_name, "full_name")
    try:
        owner = await stage_owner(db, full_name, national_id, contact_number, address, actor)
        await store_call(db.commit(), "commit owner")
    except Exception:
        await abort(db, "create owner")
        raise

    logger.info(f"Owner recorded: {owner.id} ({full_name})")
    return owner


async def list_owners(db: AsyncSession) -> list:
    """All owners, ordered by name."""
    result = await store_call(
        db.execute(select(Owner).order_by(Owner.full_name, Owner.created_at)),
        "select owners",
    )
    return list(result.scalars().all())


async def get_owner(db: AsyncSession, owner_id: str) -> Owner:
    owner = await store_call(db.get(Owner, owner_id), "select owner")
    if owner is None:
        raise NotFoundError(f"Owner '{owner_id}' not found.", {"owner_id": owner_id})
    return owner


def owner_to_dict(owner: Optional[Owner]) -> Optional[dict]:
    if owner is None:
        return None
    return {
        "id": owner.id,
        "full_name": owner.full_name,
        "national_id": crypto_engine.decrypt_optional(owner.national_id_encrypted),
        "contact_number": owner.contact_number,
        "address": owner.address,
        "created_at": owner.created_at.isoformat(),
    }
