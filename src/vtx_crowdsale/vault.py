from __future__ import annotations

import logging
from typing import Dict

from .chain import Context, Contract, Revert, address_of, public, view
from .project_constants import ZERO_ADDRESS

log = logging.getLogger("vault")


class VaultState:
    """States of the RefundVault"""

    ACTIVE = 0  # Accepting deposits
    REFUNDING = 1  # Goal missed, investors may withdraw
    CLOSED = 2  # Goal met, funds released to the wallet


class RefundVault(Contract):
    """Escrow that holds contributions until the sale outcome is known.

    Owned by the crowdsale that deploys it. Only the owner can deposit, close
    the vault or enable refunds; anyone can trigger a refund for an investor
    once refunds are enabled.
    """

    wallet: str
    state: int
    deposits: Dict[str, int]

    def initialize(self, ctx: Context, wallet: str) -> None:
        wallet = address_of(wallet)
        if wallet == ZERO_ADDRESS:
            raise Revert("Vault wallet is the zero address")
        self.wallet = wallet
        self.state = VaultState.ACTIVE
        self.deposits = {}

    @view
    def deposited(self, investor: str) -> int:
        return self.deposits.get(address_of(investor), 0)

    def _require_state(self, expected: int, action: str) -> None:
        if self.state != expected:
            raise Revert(f"Cannot {action} while vault state is {self.state}")

    @public(payable=True)
    def deposit(self, ctx: Context, investor: str) -> None:
        self._only_owner(ctx)
        self._require_state(VaultState.ACTIVE, "deposit")
        investor = address_of(investor)
        self.deposits[investor] = self.deposits.get(investor, 0) + ctx.value

    @public
    def close(self, ctx: Context) -> None:
        self._only_owner(ctx)
        self._require_state(VaultState.ACTIVE, "close")
        self.state = VaultState.CLOSED
        amount = self.balance()
        self._send(self.wallet, amount)
        self._emit("Closed")
        log.info("Vault %s closed, released %d wei to %s", self.address, amount, self.wallet)

    @public
    def enable_refunds(self, ctx: Context) -> None:
        self._only_owner(ctx)
        self._require_state(VaultState.ACTIVE, "enable refunds")
        self.state = VaultState.REFUNDING
        self._emit("RefundsEnabled")
        log.info("Vault %s refunds enabled", self.address)

    @public
    def refund(self, ctx: Context, investor: str) -> int:
        self._require_state(VaultState.REFUNDING, "refund")
        investor = address_of(investor)
        amount = self.deposits.get(investor, 0)
        self.deposits[investor] = 0
        self._send(investor, amount)
        self._emit("Refunded", beneficiary=investor, wei_amount=amount)
        log.info("Refunded %d wei to %s", amount, investor)
        return amount
