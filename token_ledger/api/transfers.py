"""
Mutating endpoints. The caller is resolved from the request, never from the body.
"""

from fastapi import APIRouter, Depends

from .auth import LedgerSystem, get_caller, get_ledger_system, ledger_http_error
from .schemas import AllowanceChangeRequest, ApproveRequest, TransferFromRequest, TransferRequest
from ..amounts import parse_amount
from ..exceptions import LedgerError


router = APIRouter()


@router.post("/transfer")
async def transfer(
    request: TransferRequest,
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Transfer from the caller's balance"""
    try:
        amount = parse_amount(request.amount)
        system.ledger.transfer(caller, request.to, amount)
    except LedgerError as e:
        raise ledger_http_error(e)

    return {
        "success": True,
        "from": caller,
        "to": request.to,
        "amount": str(amount),
        "balance": str(system.ledger.balance_of(caller))
    }


@router.post("/approve")
async def approve(
    request: ApproveRequest,
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Set the allowance of spender over the caller's balance"""
    try:
        amount = parse_amount(request.amount)
        system.ledger.approve(caller, request.spender, amount)
    except LedgerError as e:
        raise ledger_http_error(e)

    return {
        "success": True,
        "owner": caller,
        "spender": request.spender,
        "allowance": str(amount)
    }


@router.post("/transfer-from")
async def transfer_from(
    request: TransferFromRequest,
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Spend the caller's allowance over another account"""
    try:
        amount = parse_amount(request.amount)
        system.ledger.transfer_from(caller, request.from_account, request.to, amount)
    except LedgerError as e:
        raise ledger_http_error(e)

    return {
        "success": True,
        "from": request.from_account,
        "to": request.to,
        "spender": caller,
        "amount": str(amount),
        "remaining_allowance": str(system.ledger.allowance(request.from_account, caller))
    }


@router.post("/allowances/increase")
async def increase_allowance(
    request: AllowanceChangeRequest,
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    try:
        system.ledger.increase_allowance(caller, request.spender, parse_amount(request.amount))
    except LedgerError as e:
        raise ledger_http_error(e)

    return {
        "success": True,
        "owner": caller,
        "spender": request.spender,
        "allowance": str(system.ledger.allowance(caller, request.spender))
    }


@router.post("/allowances/decrease")
async def decrease_allowance(
    request: AllowanceChangeRequest,
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    try:
        system.ledger.decrease_allowance(caller, request.spender, parse_amount(request.amount))
    except LedgerError as e:
        raise ledger_http_error(e)

    return {
        "success": True,
        "owner": caller,
        "spender": request.spender,
        "allowance": str(system.ledger.allowance(caller, request.spender))
    }
