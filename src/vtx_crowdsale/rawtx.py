from __future__ import annotations

import logging
from typing import Any, Dict

from eth_account import Account
from eth_utils import add_0x_prefix, to_checksum_address

from .project_constants import GAS_LIMIT
from .rpc import RpcClient

log = logging.getLogger("rawtx")


def build_transaction(
    rpc: RpcClient,
    sender_address: str,
    contract_address: str,
    data: str,
    value: int,
    gas_limit: int = GAS_LIMIT,
) -> Dict[str, Any]:
    return {
        "nonce": rpc.get_transaction_count(sender_address),
        "gasPrice": rpc.gas_price(),
        "gas": gas_limit,
        "to": to_checksum_address(contract_address),
        "value": int(value),
        "data": add_0x_prefix(data) if data else "0x",
        "chainId": rpc.chain_id(),
    }


def raw_transaction(
    rpc: RpcClient,
    sender_address: str,
    sender_private_key: str,
    contract_address: str,
    data: str,
    value: int,
    gas_limit: int = GAS_LIMIT,
) -> str:
    """
    Call a contract from any account whose private key we hold.

    `data` is the ABI-encoded call (hex). `value` is in wei. The transaction
    is signed locally and broadcast with eth_sendRawTransaction; the
    transaction hash is returned.
    """
    account = Account.from_key(add_0x_prefix(sender_private_key))
    if account.address != to_checksum_address(sender_address):
        raise ValueError(
            f"Private key controls {account.address}, not {sender_address}"
        )

    tx = build_transaction(rpc, account.address, contract_address, data, value, gas_limit)
    signed = account.sign_transaction(tx)
    raw = add_0x_prefix(signed.raw_transaction.hex())

    log.debug("Signed tx nonce=%d to=%s value=%d", tx["nonce"], tx["to"], tx["value"])
    tx_hash = rpc.send_raw_transaction(raw)
    log.info("Broadcast tx %s from %s", tx_hash, account.address)
    return tx_hash
