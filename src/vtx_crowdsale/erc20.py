from __future__ import annotations

import logging
from typing import Dict, Tuple

from .chain import Context, Contract, InsufficientBalance, Revert, address_of, public, view
from .project_constants import ZERO_ADDRESS

log = logging.getLogger("token")


class TokenPaused(Revert):
    pass


class InsufficientAllowance(Revert):
    pass


class MintingFinished(Revert):
    pass


class VTXToken(Contract):
    """ERC20 token that is mintable by its owner and pausable.

    While paused, transfers and approvals revert. Once minting is finished it
    cannot be resumed.
    """

    name: str
    symbol: str
    decimals: int
    total_supply: int
    paused: bool
    minting_finished: bool
    balances: Dict[str, int]
    allowances: Dict[Tuple[str, str], int]

    def initialize(self, ctx: Context, name: str, symbol: str, decimals: int) -> None:
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.total_supply = 0
        self.paused = False
        self.minting_finished = False
        self.balances = {}
        self.allowances = {}

    @view
    def balance_of(self, who: str) -> int:
        return self.balances.get(address_of(who), 0)

    @view
    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get((address_of(owner), address_of(spender)), 0)

    def _when_not_paused(self) -> None:
        if self.paused:
            raise TokenPaused(f"{self.symbol} transfers are paused")

    def _move(self, frm: str, to: str, amount: int) -> None:
        frm, to = address_of(frm), address_of(to)
        if to == ZERO_ADDRESS:
            raise Revert("Transfer to the zero address")
        if amount < 0:
            raise Revert("Negative amount")
        available = self.balances.get(frm, 0)
        if available < amount:
            raise InsufficientBalance(f"{frm} holds {available} {self.symbol}, needs {amount}")
        self.balances[frm] = available - amount
        self.balances[to] = self.balances.get(to, 0) + amount
        self._emit("Transfer", frm=frm, to=to, value=amount)

    @public
    def transfer(self, ctx: Context, to: str, amount: int) -> bool:
        self._when_not_paused()
        self._move(ctx.sender, to, amount)
        return True

    @public
    def approve(self, ctx: Context, spender: str, amount: int) -> bool:
        self._when_not_paused()
        if amount < 0:
            raise Revert("Negative allowance")
        spender = address_of(spender)
        self.allowances[(ctx.sender, spender)] = amount
        self._emit("Approval", owner=ctx.sender, spender=spender, value=amount)
        return True

    @public
    def transfer_from(self, ctx: Context, frm: str, to: str, amount: int) -> bool:
        self._when_not_paused()
        frm = address_of(frm)
        allowed = self.allowance(frm, ctx.sender)
        if allowed < amount:
            raise InsufficientAllowance(
                f"{ctx.sender} may spend {allowed} of {frm}'s {self.symbol}, needs {amount}"
            )
        self._move(frm, to, amount)
        self.allowances[(frm, ctx.sender)] = allowed - amount
        return True

    @public
    def mint(self, ctx: Context, to: str, amount: int) -> bool:
        self._only_owner(ctx)
        if self.minting_finished:
            raise MintingFinished("Minting is finished")
        if amount < 0:
            raise Revert("Negative amount")
        to = address_of(to)
        self.total_supply += amount
        self.balances[to] = self.balances.get(to, 0) + amount
        self._emit("Mint", to=to, amount=amount)
        self._emit("Transfer", frm=ZERO_ADDRESS, to=to, value=amount)
        return True

    @public
    def finish_minting(self, ctx: Context) -> bool:
        self._only_owner(ctx)
        if self.minting_finished:
            raise MintingFinished("Minting is already finished")
        self.minting_finished = True
        self._emit("MintFinished")
        log.info("%s minting finished, total supply %d", self.symbol, self.total_supply)
        return True

    @public
    def pause(self, ctx: Context) -> None:
        self._only_owner(ctx)
        if self.paused:
            raise Revert("Already paused")
        self.paused = True
        self._emit("Pause")

    @public
    def unpause(self, ctx: Context) -> None:
        self._only_owner(ctx)
        if not self.paused:
            raise Revert("Not paused")
        self.paused = False
        self._emit("Unpause")
