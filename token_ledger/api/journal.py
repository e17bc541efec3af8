"""
Notification journal and ownership endpoints
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from .auth import LedgerSystem, get_caller, get_ledger_system, ledger_http_error
from .schemas import OwnershipTransferRequest
from ..events import LedgerEvent
from ..exceptions import LedgerError


router = APIRouter()


def _require_journal(system: LedgerSystem):
    if system.journal is None:
        raise HTTPException(status_code=404, detail="Journal is disabled")
    return system.journal


def _require_ownership(system: LedgerSystem):
    if system.ownership is None:
        raise HTTPException(status_code=404, detail="Ownership is disabled")
    return system.ownership


@router.get("/events")
async def list_events(
    account: Optional[str] = None,
    event_type: Optional[str] = Query(None, description="Transfer, Approval, ..."),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Journal records in sequence order"""
    journal = _require_journal(system)
    try:
        kind = LedgerEvent(event_type) if event_type else None
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown event type: {event_type}")

    records = journal.entries(account=account, event_type=kind, limit=limit)
    return {
        "events": [record.to_dict() for record in records],
        "count": len(records)
    }


@router.get("/events/verify")
async def verify_events(system: LedgerSystem = Depends(get_ledger_system)):
    """Check the journal hash chain"""
    return _require_journal(system).verify_integrity()


@router.get("/ownership")
async def get_ownership(system: LedgerSystem = Depends(get_ledger_system)):
    ownership = _require_ownership(system)
    return {"owner": ownership.owner, "pending_owner": ownership.pending_owner}


@router.post("/ownership/transfer")
async def transfer_ownership(
    request: OwnershipTransferRequest,
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    ownership = _require_ownership(system)
    try:
        ownership.transfer_ownership(caller, request.new_owner)
    except LedgerError as e:
        raise ledger_http_error(e)
    return {"owner": ownership.owner, "pending_owner": ownership.pending_owner}


@router.post("/ownership/accept")
async def accept_ownership(
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    ownership = _require_ownership(system)
    try:
        ownership.accept_ownership(caller)
    except LedgerError as e:
        raise ledger_http_error(e)
    return {"owner": ownership.owner, "pending_owner": ownership.pending_owner}


@router.post("/ownership/renounce")
async def renounce_ownership(
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    ownership = _require_ownership(system)
    try:
        ownership.renounce_ownership(caller)
    except LedgerError as e:
        raise ledger_http_error(e)
    return {"owner": ownership.owner, "pending_owner": ownership.pending_owner}
