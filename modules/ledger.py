"""
modules/ledger.py — Ownership Ledger
======================================
Registers parcels and moves ownership between owners.

The rule this module exists for: a parcel's current_owner_id is a cache of
the to_owner of its latest TransferRecord. Every change of current owner is
written together with a new, immutable TransferRecord in ONE transaction:

    1. insert TransferRecord (from = owner read at the start, to = new owner)
    2. UPDATE parcels SET current_owner_id = new
       WHERE id = parcel AND current_owner_id IS <owner read at the start>

If step 2 matches no row, another transfer got there first: everything is
rolled back and the transfer is retried (bounded), then ConcurrentTransferError.
"""

import logging
from datetime import date
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from config import settings
from core.errors import (
    ConcurrentTransferError, DuplicateParcelError, InvalidTransferError, NotFoundError, ValidationError,
)
from core.provenance import GENESIS_HASH, seal, transfer_payload
from core.store import store_call, abort, transfer_retrying
from core.validation import (
    calendar_date, non_negative_amount, optional_text, positive_number, require_text,
)
from db.models import Owner, Parcel, TransferRecord, AuditLog, utcnow
from modules.owners import owner_to_dict, stage_owner

logger = logging.getLogger("landregistry.ledger")

INITIAL_REGISTRATION_NOTE = "Initial land registration"
REGISTERED_CURRENT_OWNER_NOTE = "Current owner recorded at registration"


# ── Writes ────────────────────────────────────────────────────────────────────
async def register_parcel(
    db: AsyncSession,
    parcel_number: str,
    location: str,
    area_size,
    boundaries: Optional[str] = None,
    original_owner_id: Optional[str] = None,
    current_owner_id: Optional[str] = None,
    actor: Optional[str] = None,
    new_owner: Optional[dict] = None,
) -> Parcel:
    """
    Register a new parcel.

    With an original owner, the parcel's history starts with a synthetic
    record (nobody -> original owner, today). current_owner_id defaults to
    original_owner_id. `new_owner` (full_name, national_id, contact_number,
    address) records the original owner inline instead of referencing one.
    Owner, parcel and history are committed together or not at all.
    """
    parcel_number = require_text(parcel_number, "parcel_number")
    location = require_text(location, "location")
    area = positive_number(area_size, "area_size")
    boundaries = optional_text(boundaries)
    original_owner_id = optional_text(original_owner_id)
    current_owner_id = optional_text(current_owner_id) or original_owner_id
    actor = actor or settings.REGISTRY_ADMIN
    new_owner = _inline_owner(new_owner, original_owner_id, "original_owner_id")

    try:
        if new_owner is not None:
            owner = await stage_owner(db, actor=actor, **new_owner)
            original_owner_id = owner.id
            current_owner_id = current_owner_id or owner.id

        for owner_id in dict.fromkeys(o for o in (original_owner_id, current_owner_id) if o):
            await _require_owner(db, owner_id)

        existing = await store_call(
            db.scalar(select(Parcel.id).where(Parcel.parcel_number == parcel_number)),
            "select parcel by number",
        )
        if existing:
            raise DuplicateParcelError(
                f"Parcel number '{parcel_number}' is already registered.",
                {"parcel_number": parcel_number, "parcel_id": existing},
            )

        parcel = Parcel(
            parcel_number=parcel_number,
            location=location,
            area_size=area,
            boundaries=boundaries,
            original_owner_id=original_owner_id,
            current_owner_id=current_owner_id,
        )
        db.add(parcel)
        await store_call(db.flush(), "insert parcel")

        last = None
        if original_owner_id:
            last = _append_transfer(
                db, parcel.id, last,
                from_owner_id=None,
                to_owner_id=original_owner_id,
                transfer_date=date.today(),
                notes=INITIAL_REGISTRATION_NOTE,
                is_registration=True,
            )
        if original_owner_id and current_owner_id != original_owner_id:
            # Keep the pointer equal to the last record's to_owner
            last = _append_transfer(
                db, parcel.id, last,
                from_owner_id=original_owner_id,
                to_owner_id=current_owner_id,
                transfer_date=date.today(),
                notes=REGISTERED_CURRENT_OWNER_NOTE,
                is_registration=True,
            )

        db.add(AuditLog(actor_id=actor, action="WRITE", entity="parcel",
                        entity_id=parcel.id, details=f"Registered {parcel_number}"))
        await store_call(db.commit(), "commit parcel registration")
    except IntegrityError as e:
        await abort(db, "register parcel")
        raise DuplicateParcelError(
            f"Parcel number '{parcel_number}' is already registered.",
            {"parcel_number": parcel_number},
        ) from e
    except Exception:
        await abort(db, "register parcel")
        raise

    logger.info(f"Parcel registered: {parcel_number} ({parcel.id}), owner={current_owner_id}")
    return await get_parcel(db, parcel.id)


async def transfer_ownership(
    db: AsyncSession,
    parcel_id: str,
    to_owner_id: Optional[str] = None,
    transfer_date=None,
    sale_amount=None,
    notes: Optional[str] = None,
    actor: Optional[str] = None,
    new_owner: Optional[dict] = None,
) -> Parcel:
    """
    Move a parcel to a new owner and append the matching TransferRecord.

    Raises InvalidTransferError if to_owner_id is already the current owner,
    NotFoundError for an unknown parcel or owner, ConcurrentTransferError when
    the parcel kept changing hands underneath every attempt.

    `new_owner` records the buyer inline, in the same transaction, in place
    of to_owner_id.
    """
    to_owner_id = optional_text(to_owner_id)
    when = calendar_date(transfer_date, "transfer_date") or date.today()
    amount = non_negative_amount(sale_amount, "sale_amount")
    notes = optional_text(notes)
    new_owner = _inline_owner(new_owner, to_owner_id, "to_owner_id")
    if new_owner is None:
        to_owner_id = require_text(to_owner_id, "to_owner_id")
    actor = actor or settings.REGISTRY_ADMIN

    try:
        async for attempt in transfer_retrying():
            with attempt:
                return await _transfer_once(db, parcel_id, to_owner_id, when, amount, notes, actor, new_owner)
    except ConcurrentTransferError as e:
        logger.error(f"Transfer of {parcel_id} abandoned after {settings.TRANSFER_MAX_ATTEMPTS} attempts: {e.message}")
        raise


async def _transfer_once(db, parcel_id, to_owner_id, when, amount, notes, actor, new_owner=None) -> Parcel:
    try:
        parcel = await _load_parcel(db, parcel_id)
        if new_owner is not None:
            to_owner_id = (await stage_owner(db, actor=actor, **new_owner)).id
        else:
            await _require_owner(db, to_owner_id)

        read_owner_id = parcel.current_owner_id
        if read_owner_id == to_owner_id:
            logger.warning(f"Rejected transfer of {parcel.parcel_number}: {to_owner_id} already owns it")
            raise InvalidTransferError(
                "New owner is already the current owner.",
                {"parcel_id": parcel_id, "owner_id": to_owner_id},
            )

        last = await _latest_transfer(db, parcel_id)
        # Registration records carry the registration day, not an acquisition
        # date, so only transfers bound the next date
        previous = await _latest_acquisition(db, parcel_id)
        if previous is not None and when < previous.transfer_date:
            raise ValidationError(
                f"'transfer_date' cannot be earlier than the last recorded transfer ({previous.transfer_date.isoformat()}).",
                {"field": "transfer_date", "value": when.isoformat(), "last_transfer_date": previous.transfer_date.isoformat()},
            )

        record = _append_transfer(
            db, parcel_id, last,
            from_owner_id=read_owner_id,
            to_owner_id=to_owner_id,
            transfer_date=when,
            sale_amount=amount,
            notes=notes,
        )
        await store_call(db.flush(), "insert transfer record")

        swapped = await _swap_current_owner(db, parcel_id, read_owner_id, to_owner_id)
        if swapped != 1:
            raise ConcurrentTransferError(
                "Parcel changed owner during the transfer.",
                {"parcel_id": parcel_id, "expected_owner_id": read_owner_id},
            )

        db.add(AuditLog(actor_id=actor, action="TRANSFER", entity="transfer", entity_id=record.id,
                        details=f"{parcel.parcel_number}: {read_owner_id} -> {to_owner_id}"))
        await store_call(db.commit(), "commit transfer")
    except IntegrityError as e:
        # Unique (parcel_id, sequence): another transfer appended first
        await abort(db, "transfer ownership")
        raise ConcurrentTransferError(
            "Another transfer was recorded for this parcel at the same time.",
            {"parcel_id": parcel_id},
        ) from e
    except Exception:
        await abort(db, "transfer ownership")
        raise

    logger.info(f"Ownership of {parcel.parcel_number} transferred: {read_owner_id} -> {to_owner_id} on {when}")
    return await get_parcel(db, parcel_id)


async def _swap_current_owner(db: AsyncSession, parcel_id: str, expected_owner_id, new_owner_id: str) -> int:
    """Compare-and-set on parcels.current_owner_id. Returns rows updated."""
    if expected_owner_id is None:
        owner_matches = Parcel.current_owner_id.is_(None)
    else:
        owner_matches = Parcel.current_owner_id == expected_owner_id
    result = await store_call(
        db.execute(
            update(Parcel)
            .where(Parcel.id == parcel_id, owner_matches)
            .values(current_owner_id=new_owner_id, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        ),
        "update parcel current owner",
    )
    return result.rowcount


def _append_transfer(
    db: AsyncSession,
    parcel_id: str,
    last: Optional[TransferRecord],
    from_owner_id: Optional[str],
    to_owner_id: str,
    transfer_date: date,
    sale_amount=None,
    notes: Optional[str] = None,
    is_registration: bool = False,
) -> TransferRecord:
    """Stage the next sealed record in the parcel's chain."""
    sequence = last.sequence + 1 if last else 1
    prev_hash = last.record_hash if last else GENESIS_HASH
    payload = transfer_payload(
        parcel_id, sequence, from_owner_id, to_owner_id, transfer_date, sale_amount, notes, is_registration,
    )
    record = TransferRecord(
        parcel_id=parcel_id,
        sequence=sequence,
        from_owner_id=from_owner_id,
        to_owner_id=to_owner_id,
        transfer_date=transfer_date,
        sale_amount=sale_amount,
        notes=notes,
        is_registration=is_registration,
        prev_hash=prev_hash,
        record_hash=seal(payload, prev_hash),
    )
    db.add(record)
    return record


INLINE_OWNER_FIELDS = ("full_name", "national_id", "contact_number", "address")


def _inline_owner(new_owner: Optional[dict], owner_id: Optional[str], id_field: str) -> Optional[dict]:
    """Check an inline owner body: a name, known fields only, not alongside an owner id."""
    if new_owner is None:
        return None
    if owner_id:
        raise ValidationError(
            f"Give either '{id_field}' or 'new_owner', not both.",
            {"field": "new_owner"},
        )
    unknown = sorted(set(new_owner) - set(INLINE_OWNER_FIELDS))
    if unknown:
        raise ValidationError(f"Unknown owner fields: {', '.join(unknown)}.", {"field": "new_owner", "unknown": unknown})
    require_text(new_owner.get("full_name"), "full_name")
    return dict(new_owner)


# ── Reads ─────────────────────────────────────────────────────────────────────
def with_owners(stmt):
    return stmt.options(selectinload(Parcel.original_owner), selectinload(Parcel.current_owner))


async def _load_parcel(db: AsyncSession, parcel_id: str) -> Parcel:
    parcel = await store_call(
        db.scalar(
            with_owners(select(Parcel).where(Parcel.id == parcel_id))
            .execution_options(populate_existing=True)
        ),
        "select parcel",
    )
    if parcel is None:
        raise NotFoundError(f"Parcel '{parcel_id}' not found.", {"parcel_id": parcel_id})
    return parcel


async def _require_owner(db: AsyncSession, owner_id: str) -> None:
    found = await store_call(db.scalar(select(Owner.id).where(Owner.id == owner_id)), "select owner")
    if found is None:
        raise NotFoundError(f"Owner '{owner_id}' not found.", {"owner_id": owner_id})


async def _latest_transfer(db: AsyncSession, parcel_id: str) -> Optional[TransferRecord]:
    return await store_call(
        db.scalar(
            select(TransferRecord)
            .where(TransferRecord.parcel_id == parcel_id)
            .order_by(TransferRecord.sequence.desc())
            .limit(1)
        ),
        "select latest transfer",
    )


async def _latest_acquisition(db: AsyncSession, parcel_id: str) -> Optional[TransferRecord]:
    """The most recent record written by a transfer, ignoring registration records."""
    return await store_call(
        db.scalar(
            select(TransferRecord)
            .where(TransferRecord.parcel_id == parcel_id, TransferRecord.is_registration.is_(False))
            .order_by(TransferRecord.sequence.desc())
            .limit(1)
        ),
        "select latest acquisition",
    )


async def get_parcel(db: AsyncSession, parcel_id: str) -> Parcel:
    """One parcel with its original and current owners loaded."""
    return await _load_parcel(db, parcel_id)


async def list_parcels(db: AsyncSession, search: Optional[str] = None) -> list:
    """
    All parcels with owners loaded, ordered by parcel number.

    `search` keeps parcels whose number, location or current owner's name
    contains the term (case-insensitive).
    """
    stmt = (
        with_owners(select(Parcel))
        .order_by(Parcel.parcel_number)
        .execution_options(populate_existing=True)
    )
    term = optional_text(search)
    if term:
        stmt = stmt.outerjoin(Owner, Parcel.current_owner_id == Owner.id).where(
            Parcel.parcel_number.icontains(term, autoescape=True)
            | Parcel.location.icontains(term, autoescape=True)
            | Owner.full_name.icontains(term, autoescape=True)
        )
    result = await store_call(db.execute(stmt), "select parcels")
    return list(result.scalars().all())


async def get_transfer_history(db: AsyncSession, parcel_id: str) -> list:
    """
    A parcel's TransferRecords with owners loaded, oldest first.

    The records written at registration come first, then transfers by date
    with ties in recording order. Transfers cannot be back-dated past the
    previous transfer, so that order is exactly the recording sequence.
    """
    await _load_parcel(db, parcel_id)
    result = await store_call(
        db.execute(
            select(TransferRecord)
            .options(selectinload(TransferRecord.from_owner), selectinload(TransferRecord.to_owner))
            .where(TransferRecord.parcel_id == parcel_id)
            .order_by(TransferRecord.sequence)
            .execution_options(populate_existing=True)
        ),
        "select transfer history",
    )
    return list(result.scalars().all())


# ── Serialization ─────────────────────────────────────────────────────────────
def parcel_to_dict(parcel: Parcel) -> dict:
    return {
        "id": parcel.id,
        "parcel_number": parcel.parcel_number,
        "location": parcel.location,
        "area_size": parcel.area_size,
        "boundaries": parcel.boundaries,
        "original_owner_id": parcel.original_owner_id,
        "current_owner_id": parcel.current_owner_id,
        "original_owner": owner_to_dict(parcel.original_owner),
        "current_owner": owner_to_dict(parcel.current_owner),
        "created_at": parcel.created_at.isoformat(),
        "updated_at": parcel.updated_at.isoformat(),
    }


def transfer_to_dict(record: TransferRecord) -> dict:
    return {
        "id": record.id,
        "parcel_id": record.parcel_id,
        "sequence": record.sequence,
        "from_owner_id": record.from_owner_id,
        "to_owner_id": record.to_owner_id,
        "from_owner_name": record.from_owner.full_name if record.from_owner else None,
        "to_owner_name": record.to_owner.full_name,
        "transfer_date": record.transfer_date.isoformat(),
        "sale_amount": float(record.sale_amount) if record.sale_amount is not None else None,
        "notes": record.notes,
        "is_registration": record.is_registration,
        "record_hash": record.record_hash,
        "created_at": record.created_at.isoformat(),
    }
