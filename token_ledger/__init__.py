"""
Fixed-Supply Token Ledger

A single-asset token ledger with conserved total supply, delegated
allowances, reentrancy-safe transfers and observable Transfer/Approval
notifications.
"""

__version__ = "1.0.0"
