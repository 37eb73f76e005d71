# Overview: Server-side allocation of sale, contract and transfer numbers.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence


# document_type -> number prefix
DOCUMENT_PREFIXES = {
    "cash_sale": "CS",
    "hire_purchase": "HP",
    "transfer": "TR",
}


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def _current_number(branch_id: int, document_type: str) -> int:
    return (
        db.session.query(DocumentSequence.next_number)
        .filter_by(branch_id=branch_id, document_type=document_type)
        .scalar()
    )


def next_document_number(
    *,
    branch_id: int,
    document_type: str,
    pad: int = 4,
) -> str:
    """
    Atomically allocate the next document number for a branch/type,
    e.g. "CS-002-0017".

    Runs inside the caller's transaction: if the surrounding workflow rolls
    back, the number is released with it. The UPDATE ... SET n = n + 1 takes
    the row lock that serializes concurrent allocations.
    """
    if not branch_id:
        raise DocumentSequenceError("branch_id is required")
    prefix = DOCUMENT_PREFIXES.get(document_type)
    if prefix is None:
        raise DocumentSequenceError(f"Unknown document type: {document_type}")

    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.branch_id == branch_id,
            DocumentSequence.document_type == document_type,
        )
        .values(next_number=DocumentSequence.next_number + 1)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        number = _current_number(branch_id, document_type) - 1
    else:
        # First document of this type at the branch. Another request may
        # create the row at the same time; the savepoint keeps the outer
        # workflow alive if we lose that race.
        try:
            with db.session.begin_nested():
                db.session.add(
                    DocumentSequence(branch_id=branch_id, document_type=document_type, next_number=2)
                )
            number = 1
        except IntegrityError:
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise
            number = _current_number(branch_id, document_type) - 1

    return f"{prefix}-{branch_id:03d}-{number:0{pad}d}"
