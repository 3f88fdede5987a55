"""SQLAlchemy ORM models for the ledger and the settings store"""

from sqlalchemy import Column, String, BigInteger, Boolean, Date, DateTime, Text, JSON, Index
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class DebtRecord(Base):
    """One record of a debt chain"""

    __tablename__ = "debt"

    id = Column(String(64), primary_key=True)
    creditor_id = Column(Text, nullable=False, index=True)
    debtor_id = Column(Text, nullable=False, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    original_amount_cents = Column(BigInteger, nullable=False)
    total_paid_in_chain_cents = Column(BigInteger, nullable=False, default=0)
    remaining_amount_cents = Column(BigInteger, nullable=False)
    chain_id = Column(String(64), nullable=False, index=True)
    parent_debt_id = Column(String(64), nullable=True)
    was_partial_payment = Column(Boolean, nullable=False, default=False)
    due_date = Column(Date, nullable=True)
    status = Column(String(8), nullable=False, default="OPEN")
    description = Column(Text, nullable=True)
    attachment = Column(Text, nullable=True)
    paid_at = Column(DateTime, nullable=True)
    payment_override = Column(JSON(none_as_null=True), nullable=True)
    created_at = Column(DateTime, nullable=True, server_default=func.now())
    updated_at = Column(DateTime, nullable=True, server_default=func.now())

    __table_args__ = (Index("ix_debt_chain_status", "chain_id", "status"),)


class SystemSetting(Base):
    """Key-value settings document (score rules live under one key)"""

    __tablename__ = "system_settings"

    key = Column(String(64), primary_key=True)
    value = Column(JSON, nullable=False)
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
