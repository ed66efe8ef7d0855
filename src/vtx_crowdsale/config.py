from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

DEFAULT_RPC_URL = "http://127.0.0.1:8545"


def _env(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value or None


@dataclass(frozen=True)
class Settings:
    rpc_url: str
    private_key: Optional[str] = None
    wallet: Optional[str] = None
    founders_fund: Optional[str] = None

    @staticmethod
    def from_env(rpc_url_override: str | None = None) -> "Settings":
        load_dotenv()

        # If user provides --rpc-url, trust it. Otherwise RPC_URL, else a local dev node.
        rpc_url = rpc_url_override or _env("RPC_URL") or DEFAULT_RPC_URL

        return Settings(
            rpc_url=rpc_url,
            private_key=_env("DEPLOYER_PRIVATE_KEY"),
            wallet=_env("VTX_WALLET"),
            founders_fund=_env("VTX_FOUNDERS_FUND"),
        )

    def require_private_key(self) -> str:
        if not self.private_key:
            raise RuntimeError(
                "Missing DEPLOYER_PRIVATE_KEY. Put it in .env or export it."
            )
        return self.private_key
