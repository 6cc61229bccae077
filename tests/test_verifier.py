from rewardledger.chain.verifier import (
    TRANSFER_TOPIC,
    BuyBoostersCall,
    VerificationFailure,
    VerificationResult,
    decode_buy_boosters,
    encode_buy_boosters,
    transferred_amount,
)

TOKEN = "0x" + "ee" * 20
PAYER = "0x" + "aa" * 20
SHOP = "0x" + "55" * 20


def _topic(address):
    return "0x" + address[2:].rjust(64, "0")


def test_buy_boosters_calldata_layout():
    data = encode_buy_boosters(12345, 1, 3)
    assert data.startswith("0x6b7bbf67")
    assert len(data) == 10 + 3 * 64
    assert decode_buy_boosters(data.upper().replace("0X", "0x")) == BuyBoostersCall(12345, 1, 3)


def test_foreign_calldata_is_not_decoded():
    assert decode_buy_boosters("0xa9059cbb" + "00" * 64) is None
    assert decode_buy_boosters("0x6b7bbf67" + "00" * 10) is None
    assert decode_buy_boosters(None) is None


def test_transferred_amount_sums_matching_logs_only():
    logs = [
        {"address": TOKEN, "topics": [TRANSFER_TOPIC, _topic(PAYER), _topic(SHOP)], "data": hex(5)},
        {"address": TOKEN.upper().replace("0X", "0x"), "topics": [TRANSFER_TOPIC, _topic(PAYER), _topic(SHOP)], "data": hex(7)},
        {"address": "0x" + "01" * 20, "topics": [TRANSFER_TOPIC, _topic(PAYER), _topic(SHOP)], "data": hex(100)},
        {"address": TOKEN, "topics": [TRANSFER_TOPIC, _topic(SHOP), _topic(PAYER)], "data": hex(100)},
        {"address": TOKEN, "topics": [TRANSFER_TOPIC], "data": hex(100)},
    ]
    assert transferred_amount(logs, token=TOKEN, payer=PAYER, recipient=SHOP) == 12


def test_only_rpc_outage_is_retryable():
    assert VerificationFailure.RPC_UNAVAILABLE.retryable
    assert not any(
        reason.retryable for reason in VerificationFailure if reason is not VerificationFailure.RPC_UNAVAILABLE
    )


def test_result_is_ok_only_without_reason():
    assert VerificationResult(transaction_id="0x1").ok
    failed = VerificationResult(transaction_id="0x1", reason=VerificationFailure.WRONG_PAYER)
    assert not failed.ok
    assert not failed.retryable
