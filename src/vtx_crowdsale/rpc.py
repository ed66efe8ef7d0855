from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx


def _quantity(value: Any) -> int:
    if not isinstance(value, str) or not value.startswith("0x"):
        raise RuntimeError(f"Expected hex quantity, got {value!r}")
    return int(value, 16)


class RpcClient:
    """Minimal Ethereum JSON-RPC client."""

    def __init__(
        self,
        rpc_url: str,
        timeout_s: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.client = httpx.Client(timeout=timeout_s, transport=transport)
        self._next_id = 1

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "RpcClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def get_transaction_count(self, address: str, block: str = "pending") -> int:
        """Returns the nonce to use for the next transaction from address."""
        return _quantity(self._call("eth_getTransactionCount", [address, block]))

    def gas_price(self) -> int:
        return _quantity(self._call("eth_gasPrice", []))

    def estimate_gas(self, tx: Dict[str, Any]) -> int:
        return _quantity(self._call("eth_estimateGas", [tx]))

    def chain_id(self) -> int:
        return _quantity(self._call("eth_chainId", []))

    def get_balance(self, address: str, block: str = "latest") -> int:
        return _quantity(self._call("eth_getBalance", [address, block]))

    def send_raw_transaction(self, raw_tx: str) -> str:
        """Broadcasts a signed, 0x-prefixed transaction. Returns its hash."""
        result = self._call("eth_sendRawTransaction", [raw_tx])
        if not isinstance(result, str):
            raise RuntimeError(f"eth_sendRawTransaction returned {result!r}")
        return result

    def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        """Returns None while the transaction is pending."""
        return self._call("eth_getTransactionReceipt", [tx_hash])

    def _call(self, method: str, params: List[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": self._next_id,
            "method": method,
            "params": params,
        }
        self._next_id += 1
        data = self._post(payload)
        if "result" not in data:
            raise RuntimeError(f"RPC {method}: response has no result")
        return data["result"]

    def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        resp = self.client.post(self.rpc_url, json=payload)
        resp.raise_for_status()
        data = resp.json()
        if "error" in data:
            raise RuntimeError(f"RPC error: {data['error']}")
        return data
