from __future__ import annotations

import logging

from .chain import Context, Contract, Revert, address_of, public
from .erc20 import VTXToken

log = logging.getLogger("timelock")


class TokenTimelock(Contract):
    """Holds tokens for a beneficiary until release_time."""

    token: VTXToken
    beneficiary: str
    release_time: int

    def initialize(
        self, ctx: Context, token: VTXToken, beneficiary: str, release_time: int
    ) -> None:
        if release_time <= ctx.timestamp:
            raise Revert("Release time is before current time")
        self.token = token
        self.beneficiary = address_of(beneficiary)
        self.release_time = release_time

    @public
    def release(self, ctx: Context) -> int:
        if ctx.timestamp < self.release_time:
            raise Revert(f"Tokens are locked until {self.release_time}")
        amount = self.token.balance_of(self.address)
        if amount <= 0:
            raise Revert("No tokens to release")
        self.token.transfer(self._as_caller(ctx), self.beneficiary, amount)
        log.info("Released %d tokens to %s", amount, self.beneficiary)
        return amount
