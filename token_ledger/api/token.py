"""
Read-only token endpoints: metadata, balances, allowances
"""

from fastapi import APIRouter, Depends

from .auth import LedgerSystem, get_ledger_system
from ..amounts import format_amount


router = APIRouter()


@router.get("/token")
async def get_token(system: LedgerSystem = Depends(get_ledger_system)):
    """Token metadata and total supply"""
    ledger = system.ledger
    return {
        "name": ledger.name,
        "symbol": ledger.symbol,
        "decimals": ledger.decimals,
        "total_supply": str(ledger.total_supply),
        "total_supply_display": format_amount(ledger.total_supply, ledger.decimals)
    }


@router.get("/balances/{account}")
async def get_balance(account: str, system: LedgerSystem = Depends(get_ledger_system)):
    """Balance of an account; unknown accounts hold 0"""
    ledger = system.ledger
    balance = ledger.balance_of(account)
    return {
        "account": account,
        "balance": str(balance),
        "balance_display": format_amount(balance, ledger.decimals)
    }


@router.get("/allowances/{owner}/{spender}")
async def get_allowance(owner: str, spender: str, system: LedgerSystem = Depends(get_ledger_system)):
    """Remaining allowance of spender over owner's balance"""
    return {
        "owner": owner,
        "spender": spender,
        "allowance": str(system.ledger.allowance(owner, spender))
    }
