"""Tests for the Solana RPC client against a mocked node."""

import json

import httpx
import pytest

from lpkit.providers.solana_rpc import SolanaRpcClient, SolanaRpcConfig, SolanaRpcError


RPC_URL = "https://rpc.test"


def _client(handler, max_retries=3):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SolanaRpcClient(http, SolanaRpcConfig(rpc_url=RPC_URL, max_retries=max_retries, retry_delay_s=0))


def _ok(result):
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": result})


@pytest.mark.asyncio
async def test_latest_blockhash():
    def handler(request):
        body = json.loads(request.content)
        assert body["method"] == "getLatestBlockhash"
        assert body["params"] == [{"commitment": "confirmed"}]
        return _ok({"context": {"slot": 1}, "value": {"blockhash": "EkSnNWid2cvwEVnVx9aBqawnmiCNiDgp3gUdkDPTKN1N"}})

    assert await _client(handler).get_latest_blockhash() == "EkSnNWid2cvwEVnVx9aBqawnmiCNiDgp3gUdkDPTKN1N"


@pytest.mark.asyncio
async def test_missing_blockhash_raises():
    with pytest.raises(SolanaRpcError):
        await _client(lambda request: _ok({"value": {}})).get_latest_blockhash()


@pytest.mark.asyncio
async def test_simulate_transaction_options_and_result():
    seen = {}

    def handler(request):
        seen["params"] = json.loads(request.content)["params"]
        return _ok({
            "context": {"slot": 5},
            "value": {
                "err": {"InstructionError": [0, {"Custom": 1}]},
                "logs": ["Program log: Error: insufficient funds"],
                "unitsConsumed": 1234,
            },
        })

    result = await _client(handler).simulate_transaction("dHgx")

    assert seen["params"][0] == "dHgx"
    assert seen["params"][1] == {
        "encoding": "base64",
        "commitment": "confirmed",
        "replaceRecentBlockhash": True,
        "sigVerify": False,
    }
    assert not result.ok
    assert result.error == {"InstructionError": [0, {"Custom": 1}]}
    assert result.units_consumed == 1234


@pytest.mark.asyncio
async def test_successful_simulation():
    result = await _client(lambda request: _ok({"value": {"err": None, "logs": []}})).simulate_transaction("dHgx")

    assert result.ok


@pytest.mark.asyncio
async def test_signature_statuses_padded_to_input_length():
    def handler(request):
        params = json.loads(request.content)["params"]
        assert params[1] == {"searchTransactionHistory": True}
        return _ok({"value": [{"slot": 3, "confirmationStatus": "confirmed", "err": None}]})

    statuses = await _client(handler).get_signature_statuses(["a", "b"])

    assert statuses == [{"slot": 3, "confirmationStatus": "confirmed", "err": None}, None]


@pytest.mark.asyncio
async def test_transport_failures_are_retried():
    attempts = []

    def handler(request):
        attempts.append(request)
        if len(attempts) < 3:
            return httpx.Response(502, text="bad gateway")
        return _ok({"value": {"blockhash": "hash"}})

    assert await _client(handler).get_latest_blockhash() == "hash"
    assert len(attempts) == 3


@pytest.mark.asyncio
async def test_retries_exhausted():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(SolanaRpcError):
        await _client(handler, max_retries=2).get_latest_blockhash()


@pytest.mark.asyncio
async def test_rpc_error_not_retried():
    attempts = []

    def handler(request):
        attempts.append(request)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32002, "message": "Blockhash not found"}})

    with pytest.raises(SolanaRpcError, match="Blockhash not found"):
        await _client(handler).simulate_transaction("dHgx")

    assert len(attempts) == 1


@pytest.mark.asyncio
async def test_health_check():
    assert (await _client(lambda request: _ok("ok")).health_check())["status"] == "healthy"

    def failing(request):
        raise httpx.ConnectError("down", request=request)

    assert (await _client(failing, max_retries=1).health_check())["status"] == "error"
