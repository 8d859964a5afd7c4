"""
core/provenance.py — Transfer History Seal
============================================
Each parcel's transfer records form a hash chain, the same way blocks do:

    record_hash = sha3( canonical JSON of the record + prev_hash )

The first record of a parcel links to GENESIS_HASH. Editing or deleting any
stored record breaks every hash after it, so tampering with the append-only
history is detectable by recomputing the chain.
"""

import json
import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from core.crypto import crypto_engine

logger = logging.getLogger("landregistry.provenance")

GENESIS_HASH = "0" * 64


def _canonical_amount(amount) -> Optional[str]:
    if amount is None:
        return None
    return str(Decimal(str(amount)).quantize(Decimal("0.01")))


def transfer_payload(
    parcel_id: str,
    sequence: int,
    from_owner_id: Optional[str],
    to_owner_id: str,
    transfer_date: date,
    sale_amount=None,
    notes: Optional[str] = None,
    is_registration: bool = False,
) -> dict:
    """The fields of a transfer record that the seal covers."""
    return {
        "parcel_id": parcel_id,
        "sequence": sequence,
        "from_owner_id": from_owner_id,
        "to_owner_id": to_owner_id,
        "transfer_date": transfer_date.isoformat(),
        "sale_amount": _canonical_amount(sale_amount),
        "notes": notes,
        "is_registration": bool(is_registration),
    }


def seal(payload: dict, prev_hash: str) -> str:
    """Hash a record payload onto the previous record's hash."""
    body = json.dumps({"record": payload, "prev_hash": prev_hash}, sort_keys=True)
    return crypto_engine.hash_sha3(body)


def verify_history(records: Iterable) -> dict:
    """
    Recompute the chain over a parcel's TransferRecords (any order).

    Returns {"valid": bool, "length": int, "broken_at": sequence or None}.
    """
    ordered = sorted(records, key=lambda r: r.sequence)
    prev_hash = GENESIS_HASH
    for expected_sequence, record in enumerate(ordered, start=1):
        payload = transfer_payload(
            parcel_id=record.parcel_id,
            sequence=record.sequence,
            from_owner_id=record.from_owner_id,
            to_owner_id=record.to_owner_id,
            transfer_date=record.transfer_date,
            sale_amount=record.sale_amount,
            notes=record.notes,
            is_registration=record.is_registration,
        )
        if (
            record.sequence != expected_sequence
            or record.prev_hash != prev_hash
            or record.record_hash != seal(payload, prev_hash)
        ):
            logger.warning(f"Provenance chain broken for parcel {record.parcel_id} at #{record.sequence}")
            return {"valid": False, "length": len(ordered), "broken_at": record.sequence}
        prev_hash = record.record_hash
    return {"valid": True, "length": len(ordered), "broken_at": None}
