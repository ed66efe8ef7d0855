import json

import httpx
import pytest
from eth_account import Account
from eth_utils import to_checksum_address

from vtx_crowdsale.chain import Account as ChainAccount
from vtx_crowdsale.project_constants import GAS_LIMIT
from vtx_crowdsale.rawtx import build_transaction, raw_transaction
from vtx_crowdsale.rpc import RpcClient

CONTRACT = "0x" + "ab" * 20
TX_HASH = "0x" + "12" * 32
NODE_STATE = {
    "eth_getTransactionCount": "0x7",
    "eth_gasPrice": "0x3b9aca00",
    "eth_chainId": "0x539",
    "eth_getBalance": "0xde0b6b3a7640000",
    "eth_sendRawTransaction": TX_HASH,
    "eth_getTransactionReceipt": None,
}


@pytest.fixture
def calls():
    return []


@pytest.fixture
def rpc(calls):
    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        calls.append(payload)
        method = payload["method"]
        if method not in NODE_STATE:
            return httpx.Response(
                200,
                json={"jsonrpc": "2.0", "id": payload["id"], "error": {"code": -32601, "message": "nope"}},
            )
        return httpx.Response(
            200, json={"jsonrpc": "2.0", "id": payload["id"], "result": NODE_STATE[method]}
        )

    client = RpcClient("http://node.test", transport=httpx.MockTransport(handler))
    yield client
    client.close()


@pytest.fixture
def sender():
    return ChainAccount.from_seed("raw-tx-sender")


def test_rpc_decodes_quantities(rpc, calls, sender):
    assert rpc.get_transaction_count(sender.address) == 7
    assert rpc.gas_price() == 1_000_000_000
    assert rpc.chain_id() == 1337
    assert rpc.get_balance(sender.address) == 10**18
    assert rpc.get_transaction_receipt(TX_HASH) is None
    assert calls[0]["params"] == [sender.address, "pending"]
    assert len({c["id"] for c in calls}) == len(calls)


def test_rpc_error_raises(rpc):
    with pytest.raises(RuntimeError, match="RPC error"):
        rpc.estimate_gas({"to": CONTRACT})


def test_http_error_raises():
    transport = httpx.MockTransport(lambda request: httpx.Response(502))
    with RpcClient("http://node.test", transport=transport) as client:
        with pytest.raises(httpx.HTTPStatusError):
            client.gas_price()


def test_build_transaction(rpc, sender):
    tx = build_transaction(rpc, sender.address, CONTRACT, "deadbeef", 5)
    assert tx == {
        "nonce": 7,
        "gasPrice": 1_000_000_000,
        "gas": GAS_LIMIT,
        "to": to_checksum_address(CONTRACT),
        "value": 5,
        "data": "0xdeadbeef",
        "chainId": 1337,
    }


def test_raw_transaction_signs_and_broadcasts(rpc, calls, sender):
    tx_hash = raw_transaction(
        rpc, sender.address, sender.private_key[2:], CONTRACT, "0xdeadbeef", 10**15
    )
    assert tx_hash == TX_HASH

    methods = [c["method"] for c in calls]
    assert methods[-1] == "eth_sendRawTransaction"
    assert "eth_getTransactionCount" in methods

    raw = calls[-1]["params"][0]
    assert raw.startswith("0x")
    assert Account.recover_transaction(raw) == sender.address


def test_raw_transaction_rejects_foreign_key(rpc, calls, sender):
    other = ChainAccount.from_seed("someone-else")
    with pytest.raises(ValueError):
        raw_transaction(rpc, sender.address, other.private_key, CONTRACT, "", 0)
    assert calls == []
