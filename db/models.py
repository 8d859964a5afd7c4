"""
db/models.py — Database Table Definitions
==========================================
Each class = one table in the registry store.
Owner national IDs are stored ENCRYPTED (handled by core/crypto.py before saving).
Transfer records are append-only: rows are inserted, never updated or deleted.
"""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional
from sqlalchemy import String, DateTime, Date, Float, Numeric, Text, Integer, Boolean, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from db.session import Base


def new_uuid():
    return str(uuid.uuid4())


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ── 1. Owners ─────────────────────────────────────────────────────────────────
class Owner(Base):
    __tablename__ = "owners"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    national_id_encrypted: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    contact_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


# ── 2. Parcels ────────────────────────────────────────────────────────────────
class Parcel(Base):
    __tablename__ = "parcels"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    parcel_number: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)   # e.g. PLOT-001
    location: Mapped[str] = mapped_column(Text, nullable=False)
    area_size: Mapped[float] = mapped_column(Float, nullable=False)                         # square meters
    boundaries: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    original_owner_id: Mapped[Optional[str]] = mapped_column(ForeignKey("owners.id"), nullable=True)
    current_owner_id: Mapped[Optional[str]] = mapped_column(ForeignKey("owners.id"), nullable=True)  # cache of latest transfer
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    original_owner: Mapped[Optional["Owner"]] = relationship(foreign_keys=[original_owner_id])
    current_owner: Mapped[Optional["Owner"]] = relationship(foreign_keys=[current_owner_id])
    transfers: Mapped[list["TransferRecord"]] = relationship(
        back_populates="parcel", order_by="TransferRecord.sequence",
    )


# ── 3. Transfer Records ───────────────────────────────────────────────────────
class TransferRecord(Base):
    __tablename__ = "transfer_records"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    parcel_id: Mapped[str] = mapped_column(ForeignKey("parcels.id"), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)                # 1, 2, 3 ... per parcel
    from_owner_id: Mapped[Optional[str]] = mapped_column(ForeignKey("owners.id"), nullable=True)   # null = parcel had no owner
    to_owner_id: Mapped[str] = mapped_column(ForeignKey("owners.id"), nullable=False)
    transfer_date: Mapped[date] = mapped_column(Date, nullable=False)
    sale_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_registration: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)   # written by register_parcel
    prev_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    record_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    parcel: Mapped["Parcel"] = relationship(back_populates="transfers")
    from_owner: Mapped[Optional["Owner"]] = relationship(foreign_keys=[from_owner_id])
    to_owner: Mapped["Owner"] = relationship(foreign_keys=[to_owner_id])

    __table_args__ = (
        UniqueConstraint("parcel_id", "sequence", name="uq_transfer_parcel_sequence"),
        Index("ix_transfer_parcel_date", "parcel_id", "transfer_date"),
    )


# ── 4. Audit Log ──────────────────────────────────────────────────────────────
class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    actor_id: Mapped[str] = mapped_column(String(255))        # who acted
    action: Mapped[str] = mapped_column(String(100))          # WRITE | TRANSFER | READ
    entity: Mapped[str] = mapped_column(String(100))          # owner | parcel | transfer
    entity_id: Mapped[str] = mapped_column(String(36))
    details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
