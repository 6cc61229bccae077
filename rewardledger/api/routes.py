"""HTTP endpoints for reward grants and booster inventory."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request

from .schemas import (
    BoostersResponse,
    BoosterTransactionModel,
    EligibilityResponse,
    GrantResponse,
    InventoryResponse,
    PurchaseRequest,
    PurchaseResponse,
    RewardRequest,
    UseBoosterRequest,
    VerificationSummary,
)
from .security import require_caller
from ..app import LedgerApp

router = APIRouter()


def get_ledger(request: Request) -> LedgerApp:
    return request.app.state.ledger


@router.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@router.post(
    "/rewards/{channel}",
    response_model=GrantResponse,
    dependencies=[Depends(require_caller)],
)
async def grant_reward(
    channel: str, body: RewardRequest, ledger: LedgerApp = Depends(get_ledger)
) -> GrantResponse:
    service = ledger.reward_service(channel)
    outcome = await service.grant(body.fid)
    return GrantResponse(
        granted=outcome.granted,
        channel=outcome.channel.value,
        additional_claims=service.policy.grant_size,
        claims_in_period=outcome.claims_in_period,
        remaining_claims=outcome.remaining_claims,
        next_eligible_time=outcome.next_eligible_time,
    )


@router.get(
    "/rewards/{channel}",
    response_model=EligibilityResponse,
    dependencies=[Depends(require_caller)],
)
async def check_eligibility(
    channel: str, fid: int = Query(...), ledger: LedgerApp = Depends(get_ledger)
) -> EligibilityResponse:
    view = await ledger.reward_service(channel).check(fid)
    return EligibilityResponse(
        channel=view.channel.value,
        can_claim=view.can_claim,
        time_until_next=view.time_until_next,
        last_grant_time=view.last_grant_time,
        next_eligible_time=view.next_eligible_time,
    )


@router.post("/boosters/purchase", response_model=PurchaseResponse)
async def purchase_booster(
    body: PurchaseRequest, ledger: LedgerApp = Depends(get_ledger)
) -> PurchaseResponse:
    outcome = await ledger.purchases.purchase(
        body.fid, body.booster_type, body.quantity, body.transaction_hash
    )
    verification = outcome.verification
    return PurchaseResponse(
        fid=outcome.fid,
        booster_type=outcome.kind,
        quantity=outcome.quantity,
        new_total=outcome.new_total,
        transaction_hash=outcome.transaction_id,
        verification=VerificationSummary(
            block_number=verification.block_number,
            payer=verification.payer,
            amount=str(verification.amount) if verification.amount is not None else None,
            expected_amount=(
                str(verification.expected_amount)
                if verification.expected_amount is not None
                else None
            ),
        ),
    )


@router.patch("/boosters/use", response_model=BoostersResponse)
async def use_booster(
    body: UseBoosterRequest, ledger: LedgerApp = Depends(get_ledger)
) -> BoostersResponse:
    boosters = await ledger.player_service.use_booster(body.fid, body.booster_type, body.used)
    return BoostersResponse(boosters=boosters)


@router.get("/boosters/{fid}", response_model=InventoryResponse)
async def booster_inventory(fid: int, ledger: LedgerApp = Depends(get_ledger)) -> InventoryResponse:
    profile = await ledger.player_service.fetch(fid)
    return InventoryResponse(
        fid=profile.fid,
        boosters=dict(profile.boosters),
        booster_transactions=[
            BoosterTransactionModel(
                kind=tx.kind,
                quantity=tx.quantity,
                transaction_hash=tx.transaction_id,
                timestamp=tx.timestamp,
            )
            for tx in profile.booster_transactions
        ],
        gift_box_claims_in_period=profile.gift_box_claims_in_period,
        has_followed=profile.has_followed,
    )
