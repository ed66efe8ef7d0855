from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional

from .chain import Context, Contract, Revert, address_of, public, view
from .erc20 import VTXToken
from .project_constants import ZERO_ADDRESS
from .timelock import TokenTimelock
from .units import ether
from .vault import RefundVault

log = logging.getLogger("crowdsale")

DEFAULT_INVESTOR_HARD_CAP = ether(50)


class CrowdsaleStage:
    """Sale stages for the VTXTokenCrowdsale"""

    PRE_ICO = 0  # Funds go straight to the wallet
    ICO = 1  # Funds are escrowed in the refund vault


class SaleNotOpen(Revert):
    pass


class CapExceeded(Revert):
    pass


class NotWhitelisted(Revert):
    pass


class InvestorCapViolation(Revert):
    pass


class InvalidState(Revert):
    pass


class VTXCrowdsale(Contract):
    """Timed, capped, refundable sale that mints tokens on purchase.

    The crowdsale must own the token so it can mint. Contributions are held in
    a RefundVault until finalize(): if the goal was reached the vault pays the
    wallet, otherwise investors can claim their refunds.
    """

    whitelist_required = False

    rate: int
    wallet: str
    token: VTXToken
    cap: int
    goal: int
    opening_time: int
    closing_time: int
    wei_raised: int
    is_finalized: bool
    vault: RefundVault
    whitelisted: Dict[str, bool]

    def initialize(
        self,
        ctx: Context,
        opening_time: int,
        closing_time: int,
        rate: int,
        wallet: str,
        cap: int,
        token: VTXToken,
        goal: int,
    ) -> None:
        self._setup(ctx, rate, wallet, token, cap, opening_time, closing_time, goal)

    def _setup(
        self,
        ctx: Context,
        rate: int,
        wallet: str,
        token: VTXToken,
        cap: int,
        opening_time: int,
        closing_time: int,
        goal: int,
    ) -> None:
        wallet = address_of(wallet)
        if rate <= 0:
            raise Revert("Rate is zero")
        if wallet == ZERO_ADDRESS:
            raise Revert("Wallet is the zero address")
        if token is None:
            raise Revert("Token is not set")
        if cap <= 0:
            raise Revert("Cap is zero")
        if opening_time < ctx.timestamp:
            raise Revert("Opening time is before current time")
        if closing_time < opening_time:
            raise Revert("Closing time is before opening time")
        if goal > cap:
            raise Revert("Goal is greater than cap")

        self.rate = rate
        self.wallet = wallet
        self.token = token
        self.cap = cap
        self.goal = goal
        self.opening_time = opening_time
        self.closing_time = closing_time
        self.wei_raised = 0
        self.is_finalized = False
        self.whitelisted = {}
        self.vault = self.chain.deploy(RefundVault, self._as_caller(ctx), wallet)

    # -- views ---------------------------------------------------------------

    @view
    def is_open(self) -> bool:
        now = self.chain.latest_time()
        return self.opening_time <= now <= self.closing_time

    @view
    def has_closed(self) -> bool:
        return self.chain.latest_time() > self.closing_time

    @view
    def cap_reached(self) -> bool:
        return self.wei_raised >= self.cap

    @view
    def goal_reached(self) -> bool:
        return self.wei_raised >= self.goal

    @view
    def whitelist(self, who: str) -> bool:
        return self.whitelisted.get(address_of(who), False)

    # -- whitelist -----------------------------------------------------------

    @public
    def add_address_to_whitelist(self, ctx: Context, who: str) -> None:
        self._only_owner(ctx)
        who = address_of(who)
        self.whitelisted[who] = True
        self._emit("WhitelistedAddressAdded", addr=who)

    @public
    def add_many_to_whitelist(self, ctx: Context, addresses: Iterable[str]) -> None:
        self._only_owner(ctx)
        for who in map(address_of, addresses):
            self.whitelisted[who] = True
            self._emit("WhitelistedAddressAdded", addr=who)

    @public
    def remove_address_from_whitelist(self, ctx: Context, who: str) -> None:
        self._only_owner(ctx)
        who = address_of(who)
        self.whitelisted.pop(who, None)
        self._emit("WhitelistedAddressRemoved", addr=who)

    # -- purchases -----------------------------------------------------------

    def receive(self, ctx: Context) -> int:
        """Plain transfers buy tokens for the sender."""
        return self.buy_tokens(ctx, ctx.sender)

    @public(payable=True)
    def buy_tokens(self, ctx: Context, beneficiary: str) -> int:
        wei_amount = ctx.value
        beneficiary = address_of(beneficiary)
        self._pre_validate_purchase(ctx, beneficiary, wei_amount)

        tokens = self._get_token_amount(wei_amount)
        self.wei_raised += wei_amount

        self._deliver_tokens(ctx, beneficiary, tokens)
        self._update_purchasing_state(beneficiary, wei_amount)
        self._emit(
            "TokenPurchase",
            purchaser=ctx.sender,
            beneficiary=beneficiary,
            value=wei_amount,
            amount=tokens,
        )
        log.info("Purchase: %s bought %d tokens for %d wei", beneficiary, tokens, wei_amount)

        self._forward_funds(ctx, wei_amount)
        return tokens

    def _pre_validate_purchase(self, ctx: Context, beneficiary: str, wei_amount: int) -> None:
        if beneficiary == ZERO_ADDRESS:
            raise Revert("Beneficiary is the zero address")
        if wei_amount == 0:
            raise Revert("Purchase amount is zero")
        if not self.opening_time <= ctx.timestamp <= self.closing_time:
            raise SaleNotOpen("Sale is not open")
        if self.wei_raised + wei_amount > self.cap:
            raise CapExceeded(
                f"Purchase of {wei_amount} wei exceeds cap ({self.wei_raised}/{self.cap} raised)"
            )
        if self.whitelist_required and not self.whitelist(beneficiary):
            raise NotWhitelisted(f"{beneficiary} is not whitelisted")

    def _get_token_amount(self, wei_amount: int) -> int:
        return wei_amount * self.rate

    def _deliver_tokens(self, ctx: Context, beneficiary: str, tokens: int) -> None:
        self.token.mint(self._as_caller(ctx), beneficiary, tokens)

    def _update_purchasing_state(self, beneficiary: str, wei_amount: int) -> None:
        pass

    def _forward_funds(self, ctx: Context, wei_amount: int) -> None:
        self.vault.deposit(self._as_caller(ctx, value=wei_amount), ctx.sender)

    # -- settlement ----------------------------------------------------------

    @public
    def finalize(self, ctx: Context) -> None:
        self._only_owner(ctx)
        if self.is_finalized:
            raise InvalidState("Crowdsale is already finalized")
        if not self.has_closed():
            raise InvalidState("Crowdsale has not closed yet")

        self._finalization(ctx)
        self._emit("Finalized")
        self.is_finalized = True
        log.info(
            "Crowdsale %s finalized: raised %d wei, goal %s",
            self.address,
            self.wei_raised,
            "reached" if self.goal_reached() else "missed",
        )

    def _finalization(self, ctx: Context) -> None:
        if self.goal_reached():
            self.vault.close(self._as_caller(ctx))
        else:
            self.vault.enable_refunds(self._as_caller(ctx))

    @public
    def claim_refund(self, ctx: Context, investor: str) -> int:
        if not self.is_finalized:
            raise InvalidState("Crowdsale is not finalized")
        if self.goal_reached():
            raise InvalidState("Goal was reached, no refunds")
        return self.vault.refund(self._as_caller(ctx), investor)


class VTXTokenCrowdsale(VTXCrowdsale):
    """Two-stage, whitelisted sale with per-investor caps and a founders' share.

    PreICO purchases are forwarded to the wallet straight away at the pre-ICO
    rate. ICO purchases are escrowed in the refund vault. When the goal is
    reached, finalization mints the founders' percentage of the final supply
    into a TokenTimelock, finishes minting, unpauses the token and hands token
    ownership to the wallet.
    """

    whitelist_required = True

    pre_ico_rate: int
    ico_rate: int
    stage: int
    investor_min_cap: int
    investor_hard_cap: int
    contributions: Dict[str, int]
    founders_fund: str
    founders_percentage: int
    token_sale_percentage: int
    release_time: int
    founders_timelock: Optional[TokenTimelock]

    def initialize(
        self,
        ctx: Context,
        pre_ico_rate: int,
        ico_rate: int,
        wallet: str,
        token: VTXToken,
        cap: int,
        opening_time: int,
        closing_time: int,
        goal: int,
        investor_min_cap: int,
        founders_fund: str,
        founders_percentage: int,
        release_time: int,
        investor_hard_cap: int = DEFAULT_INVESTOR_HARD_CAP,
    ) -> None:
        self._setup(ctx, pre_ico_rate, wallet, token, cap, opening_time, closing_time, goal)

        if ico_rate <= 0:
            raise Revert("ICO rate is zero")
        if not 0 <= founders_percentage < 100:
            raise Revert("Founders percentage must be at least 0 and below 100")
        if investor_min_cap > investor_hard_cap:
            raise Revert("Investor minimum cap is greater than the hard cap")
        if release_time <= closing_time:
            raise Revert("Release time must be after closing time")
        founders_fund = address_of(founders_fund)
        if founders_fund == ZERO_ADDRESS:
            raise Revert("Founders fund is the zero address")

        self.pre_ico_rate = pre_ico_rate
        self.ico_rate = ico_rate
        self.stage = CrowdsaleStage.PRE_ICO
        self.investor_min_cap = investor_min_cap
        self.investor_hard_cap = investor_hard_cap
        self.contributions = {}
        self.founders_fund = founders_fund
        self.founders_percentage = founders_percentage
        self.token_sale_percentage = 100 - founders_percentage
        self.release_time = release_time
        self.founders_timelock = None

    @view
    def get_user_contribution(self, who: str) -> int:
        return self.contributions.get(address_of(who), 0)

    @public
    def set_crowdsale_stage(self, ctx: Context, stage: int) -> None:
        self._only_owner(ctx)
        if stage == CrowdsaleStage.PRE_ICO:
            self.rate = self.pre_ico_rate
        elif stage == CrowdsaleStage.ICO:
            self.rate = self.ico_rate
        else:
            raise Revert(f"Unknown crowdsale stage {stage}")
        self.stage = stage
        self._emit("StageChanged", stage=stage, rate=self.rate)
        log.info("Crowdsale %s moved to stage %d at rate %d", self.address, stage, self.rate)

    def _pre_validate_purchase(self, ctx: Context, beneficiary: str, wei_amount: int) -> None:
        super()._pre_validate_purchase(ctx, beneficiary, wei_amount)
        # Caps apply to the running total, so a top-up below the minimum is
        # fine once the minimum has been met.
        new_contribution = self.contributions.get(beneficiary, 0) + wei_amount
        if new_contribution < self.investor_min_cap:
            raise InvestorCapViolation(
                f"Contribution of {new_contribution} wei is below the minimum {self.investor_min_cap}"
            )
        if new_contribution > self.investor_hard_cap:
            raise InvestorCapViolation(
                f"Contribution of {new_contribution} wei exceeds the investor cap {self.investor_hard_cap}"
            )

    def _update_purchasing_state(self, beneficiary: str, wei_amount: int) -> None:
        self.contributions[beneficiary] = self.contributions.get(beneficiary, 0) + wei_amount

    def _forward_funds(self, ctx: Context, wei_amount: int) -> None:
        if self.stage == CrowdsaleStage.PRE_ICO:
            self._send(self.wallet, wei_amount)
        else:
            super()._forward_funds(ctx, wei_amount)

    def _finalization(self, ctx: Context) -> None:
        if self.goal_reached():
            caller = self._as_caller(ctx)
            already_minted = self.token.total_supply
            final_total_supply = already_minted // self.token_sale_percentage * 100

            self.founders_timelock = self.chain.deploy(
                TokenTimelock, caller, self.token, self.founders_fund, self.release_time
            )
            founders_amount = final_total_supply * self.founders_percentage // 100
            self.token.mint(caller, self.founders_timelock.address, founders_amount)
            log.info(
                "Locked %d founders' tokens until %d in %s",
                founders_amount,
                self.release_time,
                self.founders_timelock.address,
            )

            self.token.finish_minting(caller)
            if self.token.paused:
                self.token.unpause(caller)
            self.token.transfer_ownership(caller, self.wallet)

        super()._finalization(ctx)
