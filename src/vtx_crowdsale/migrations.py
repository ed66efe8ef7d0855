from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional

from .chain import Chain, address_of
from .crowdsale import VTXTokenCrowdsale
from .erc20 import VTXToken
from .project_constants import (
    CAP_ETHER,
    FOUNDERS_PERCENTAGE,
    GOAL_ETHER,
    ICO_RATE,
    INVESTOR_HARD_CAP_ETHER,
    INVESTOR_MIN_CAP_ETHER,
    OPENING_DELAY,
    PRE_ICO_RATE,
    RELEASE_DELAY,
    SALE_DURATION,
    TOKEN_DECIMALS,
    TOKEN_NAME,
    TOKEN_SYMBOL,
)
from .units import ether

log = logging.getLogger("migrations")


@dataclass(frozen=True)
class DeploymentParams:
    token_name: str
    token_symbol: str
    token_decimals: int
    pre_ico_rate: int
    ico_rate: int
    wallet: str
    cap: int
    opening_time: int
    closing_time: int
    goal: int
    investor_min_cap: int
    investor_hard_cap: int
    founders_fund: str
    founders_percentage: int
    release_time: int

    def crowdsale_args(self, token: VTXToken) -> List[Any]:
        """Positional arguments for VTXTokenCrowdsale, in constructor order."""
        return [
            self.pre_ico_rate,
            self.ico_rate,
            self.wallet,
            token,
            self.cap,
            self.opening_time,
            self.closing_time,
            self.goal,
            self.investor_min_cap,
            self.founders_fund,
            self.founders_percentage,
            self.release_time,
            self.investor_hard_cap,
        ]


def build_params(latest_time: int, wallet: str, founders_fund: str) -> DeploymentParams:
    opening_time = latest_time + OPENING_DELAY
    closing_time = opening_time + SALE_DURATION
    return DeploymentParams(
        token_name=TOKEN_NAME,
        token_symbol=TOKEN_SYMBOL,
        token_decimals=TOKEN_DECIMALS,
        pre_ico_rate=PRE_ICO_RATE,
        ico_rate=ICO_RATE,
        wallet=wallet,
        cap=ether(CAP_ETHER),
        opening_time=opening_time,
        closing_time=closing_time,
        goal=ether(GOAL_ETHER),
        investor_min_cap=ether(INVESTOR_MIN_CAP_ETHER),
        investor_hard_cap=ether(INVESTOR_HARD_CAP_ETHER),
        founders_fund=founders_fund,
        founders_percentage=FOUNDERS_PERCENTAGE,
        release_time=closing_time + RELEASE_DELAY,
    )


@dataclass
class Deployment:
    latest_time: int
    deployer: str
    params: DeploymentParams
    token: VTXToken
    crowdsale: VTXTokenCrowdsale
    whitelist: List[str]

    def to_record(self) -> Dict[str, Any]:
        params = asdict(self.params)
        # Wei amounts exceed JSON-safe integers in some readers; store as strings.
        for key in ("cap", "goal", "investor_min_cap", "investor_hard_cap"):
            params[key] = str(params[key])
        return {
            "metadata": {
                "tool": "vtx-crowdsale",
                "latest_time": self.latest_time,
                "deployer": self.deployer,
            },
            "contracts": {
                "token": self.token.address,
                "crowdsale": self.crowdsale.address,
                "vault": self.crowdsale.vault.address,
            },
            "params": params,
            "whitelist": list(self.whitelist),
        }


def deploy(
    chain: Chain,
    deployer: str,
    wallet: Optional[str] = None,
    founders_fund: Optional[str] = None,
    whitelist: Iterable[str] = (),
) -> Deployment:
    """Deploy the token and the crowdsale, then hand the token over to the sale."""
    deployer = address_of(deployer)
    wallet = address_of(wallet) if wallet else deployer
    founders_fund = address_of(founders_fund) if founders_fund else deployer

    latest_time = chain.latest_time()
    params = build_params(latest_time, wallet, founders_fund)

    ctx = chain.context(deployer)
    token = chain.deploy(
        VTXToken, ctx, params.token_name, params.token_symbol, params.token_decimals
    )
    log.info("Token %s deployed at %s", params.token_symbol, token.address)

    crowdsale = chain.deploy(VTXTokenCrowdsale, ctx, *params.crowdsale_args(token))
    log.info("Crowdsale deployed at %s (vault %s)", crowdsale.address, crowdsale.vault.address)

    token.pause(chain.context(deployer))
    token.transfer_ownership(chain.context(deployer), crowdsale.address)

    investors = [address_of(a) for a in whitelist]
    if investors:
        crowdsale.add_many_to_whitelist(chain.context(deployer), investors)
        log.info("Whitelisted %d investors", len(investors))

    return Deployment(
        latest_time=latest_time,
        deployer=deployer,
        params=params,
        token=token,
        crowdsale=crowdsale,
        whitelist=investors,
    )


def verify_record(record: Dict[str, Any]) -> Dict[str, Any]:
    meta = record["metadata"]
    recorded = record["params"]

    expected = asdict(
        build_params(int(meta["latest_time"]), recorded["wallet"], recorded["founders_fund"])
    )
    for key, value in expected.items():
        if key not in recorded:
            raise RuntimeError(f"Deployment record is missing parameter {key!r}")
        if str(recorded[key]) != str(value):
            raise RuntimeError(
                f"Parameter mismatch for {key}: record={recorded[key]} recomputed={value}"
            )

    if int(recorded["goal"]) > int(recorded["cap"]):
        raise RuntimeError("Goal exceeds cap")
    if int(recorded["investor_min_cap"]) > int(recorded["investor_hard_cap"]):
        raise RuntimeError("Investor minimum cap exceeds investor hard cap")
    if not (
        int(meta["latest_time"])
        <= int(recorded["opening_time"])
        <= int(recorded["closing_time"])
        < int(recorded["release_time"])
    ):
        raise RuntimeError("Sale times are out of order")

    if not 0 <= int(recorded["founders_percentage"]) < 100:
        raise RuntimeError("Founders percentage must leave tokens for the sale")

    return {
        "ok": True,
        "crowdsale": record["contracts"]["crowdsale"],
        "token": record["contracts"]["token"],
        "opening_time": int(recorded["opening_time"]),
        "closing_time": int(recorded["closing_time"]),
        "release_time": int(recorded["release_time"]),
    }
