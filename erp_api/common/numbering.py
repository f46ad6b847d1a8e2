"""
Sequential document numbering (quotations, delivery notes, invoices, ...)
"""
from datetime import date
from typing import Callable, Optional
from uuid import uuid4
import logging

from sqlalchemy import Column, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Session

from erp_api.database.database import Base

logger = logging.getLogger(__name__)


class DocumentSequence(Base):
    """Counter per document prefix and year"""
    __tablename__ = "document_sequences"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    prefix = Column(String(10), nullable=False)
    year = Column(Integer, nullable=False, default=0)
    current_number = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("prefix", "year", name="uq_document_sequence_prefix_year"),
    )


def next_document_number(
    db: Session,
    prefix: str,
    on_date: Optional[date] = None,
    width: int = 3,
    yearly: bool = True,
    is_taken: Optional[Callable[[str], bool]] = None
) -> str:
    """
    Reserve the next number for a document type.

    Yearly sequences render as PREFIX-YYYY-NNN (e.g. INV-2024-001),
    global ones as PREFIX-NNN. Numbers for which is_taken returns True
    (already typed in by a user) are skipped. The caller commits the session.
    """
    year = (on_date or date.today()).year if yearly else 0

    sequence = db.query(DocumentSequence).filter(
        DocumentSequence.prefix == prefix,
        DocumentSequence.year == year
    ).first()

    if not sequence:
        sequence = DocumentSequence(prefix=prefix, year=year, current_number=0)
        db.add(sequence)
        db.flush()

    while True:
        sequence.current_number += 1
        if yearly:
            number = f"{prefix}-{year}-{sequence.current_number:0{width}d}"
        else:
            number = f"{prefix}-{sequence.current_number:0{width}d}"
        if is_taken is None or not is_taken(number):
            break
    db.flush()

    logger.debug(f"Reserved document number {number}")
    return number
