"""Audit sink: append-only action records written inside the caller's transaction."""

from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from teahouse.db.models import AuditLog


def record_audit(
    session: Session,
    action: str,
    table_name: str,
    record_id: Optional[int],
    changes: Dict[str, Any],
    performed_by: Optional[int],
) -> AuditLog:
    """
    Add one audit record to the current transaction.

    The record commits or rolls back together with the mutation it describes.
    ``changes`` must be JSON-serialisable.
    """
    entry = AuditLog(
        action=action,
        table_name=table_name,
        record_id=record_id,
        changes=changes,
        performed_by=performed_by,
    )
    session.add(entry)
    session.flush()
    return entry


def list_audit_records(session: Session, table_name: str, record_id: int):
    stmt = (
        select(AuditLog)
        .where(AuditLog.table_name == table_name)
        .where(AuditLog.record_id == record_id)
        .order_by(AuditLog.id)
    )
    return session.execute(stmt).scalars().all()
