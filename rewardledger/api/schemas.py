"""Request and response models of the HTTP API."""

from __future__ import annotations

from typing import Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RewardRequest(CamelModel):
    fid: int
    user_address: Optional[str] = None


class GrantResponse(CamelModel):
    success: bool = True
    granted: bool
    channel: str
    additional_claims: int
    claims_in_period: int
    remaining_claims: int
    next_eligible_time: Optional[int] = None


class EligibilityResponse(CamelModel):
    success: bool = True
    channel: str
    can_claim: bool
    time_until_next: int
    last_grant_time: Optional[int] = None
    next_eligible_time: Optional[int] = None


class PurchaseRequest(CamelModel):
    fid: int
    booster_type: Union[int, str]
    quantity: int
    transaction_hash: str = Field(
        validation_alias=AliasChoices("transactionHash", "transactionId", "transaction_hash")
    )


class VerificationSummary(CamelModel):
    block_number: Optional[int] = None
    payer: Optional[str] = None
    # Token amounts exceed the JSON safe-integer range.
    amount: Optional[str] = None
    expected_amount: Optional[str] = None


class PurchaseResponse(CamelModel):
    success: bool = True
    fid: int
    booster_type: str
    quantity: int
    new_total: int
    transaction_hash: str
    verification: VerificationSummary


class UseBoosterRequest(CamelModel):
    fid: int
    booster_type: Union[int, str]
    used: int


class BoostersResponse(CamelModel):
    success: bool = True
    boosters: Dict[str, int]


class BoosterTransactionModel(CamelModel):
    kind: str
    quantity: int
    transaction_hash: str
    timestamp: int


class InventoryResponse(CamelModel):
    success: bool = True
    fid: int
    boosters: Dict[str, int]
    booster_transactions: List[BoosterTransactionModel]
    gift_box_claims_in_period: int
    has_followed: bool
