"""
Pydantic schemas for API requests and responses
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


AMOUNT_DESCRIPTION = "Amount in smallest units as a decimal string"


class TransferRequest(BaseModel):
    to: str = Field(..., description="Recipient account")
    amount: str = Field(..., description=AMOUNT_DESCRIPTION)


class ApproveRequest(BaseModel):
    spender: str = Field(..., description="Account allowed to spend")
    amount: str = Field(..., description=AMOUNT_DESCRIPTION)


class TransferFromRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_account: str = Field(..., alias="from", description="Account whose balance is spent")
    to: str = Field(..., description="Recipient account")
    amount: str = Field(..., description=AMOUNT_DESCRIPTION)


class AllowanceChangeRequest(BaseModel):
    spender: str
    amount: str = Field(..., description=AMOUNT_DESCRIPTION)


class OwnershipTransferRequest(BaseModel):
    new_owner: Optional[str] = Field(None, description="Proposed owner; null cancels a pending handover")
