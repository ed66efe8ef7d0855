import pytest

from vtx_crowdsale.chain import InsufficientBalance, NotOwner, Revert
from vtx_crowdsale.erc20 import InsufficientAllowance, MintingFinished, TokenPaused, VTXToken
from vtx_crowdsale.project_constants import ZERO_ADDRESS

NAME = "VTX Token"
SYMBOL = "VTX"
DECIMALS = 18


@pytest.fixture
def token(chain, accounts):
    return chain.deploy(VTXToken, chain.context(accounts[0]), NAME, SYMBOL, DECIMALS)


@pytest.fixture
def funded(chain, accounts, token):
    token.mint(chain.context(accounts[0]), accounts[0], 10**27)
    return token


def test_token_attributes(token, accounts):
    assert token.name == NAME
    assert token.symbol == SYMBOL
    assert token.decimals == DECIMALS
    assert token.total_supply == 0
    assert token.owner == accounts[0]


def test_transfer(chain, accounts, funded):
    owner, recipient = accounts[0], accounts[1]
    funded.transfer(chain.context(owner), recipient, 1_000_000)
    assert funded.balance_of(owner) == 10**27 - 1_000_000
    assert funded.balance_of(recipient) == 1_000_000
    assert funded.total_supply == 10**27


def test_transfer_more_than_balance_reverts(chain, accounts, funded):
    with pytest.raises(InsufficientBalance):
        funded.transfer(chain.context(accounts[1]), accounts[0], 1)


def test_transfer_to_zero_address_reverts(chain, accounts, funded):
    with pytest.raises(Revert):
        funded.transfer(chain.context(accounts[0]), ZERO_ADDRESS, 1)


def test_approve_and_transfer_from(chain, accounts, funded):
    owner, spender, recipient = accounts[0], accounts[2], accounts[3]
    assert funded.allowance(owner, spender) == 0

    funded.approve(chain.context(owner), spender, 5_000_000)
    assert funded.allowance(owner, spender) == 5_000_000

    funded.transfer_from(chain.context(spender), owner, recipient, 2_000_000)
    assert funded.balance_of(recipient) == 2_000_000
    assert funded.allowance(owner, spender) == 3_000_000

    with pytest.raises(InsufficientAllowance):
        funded.transfer_from(chain.context(spender), owner, recipient, 3_000_001)


def test_only_owner_can_mint(chain, accounts, token):
    with pytest.raises(NotOwner):
        token.mint(chain.context(accounts[1]), accounts[1], 100)
    assert token.total_supply == 0


def test_no_minting_after_finish(chain, accounts, token):
    token.finish_minting(chain.context(accounts[0]))
    assert token.minting_finished
    with pytest.raises(MintingFinished):
        token.mint(chain.context(accounts[0]), accounts[0], 1)


def test_pause_blocks_transfers_and_approvals(chain, accounts, funded):
    funded.pause(chain.context(accounts[0]))
    with pytest.raises(TokenPaused):
        funded.transfer(chain.context(accounts[0]), accounts[1], 1)
    with pytest.raises(TokenPaused):
        funded.approve(chain.context(accounts[0]), accounts[1], 1)

    funded.unpause(chain.context(accounts[0]))
    funded.transfer(chain.context(accounts[0]), accounts[1], 1)
    assert funded.balance_of(accounts[1]) == 1


def test_pause_is_owner_only_and_not_repeatable(chain, accounts, token):
    with pytest.raises(NotOwner):
        token.pause(chain.context(accounts[1]))
    token.pause(chain.context(accounts[0]))
    with pytest.raises(Revert):
        token.pause(chain.context(accounts[0]))


def test_transfer_ownership(chain, accounts, token):
    token.transfer_ownership(chain.context(accounts[0]), accounts[1])
    assert token.owner == accounts[1]
    with pytest.raises(NotOwner):
        token.mint(chain.context(accounts[0]), accounts[0], 1)
    with pytest.raises(Revert):
        token.transfer_ownership(chain.context(accounts[1]), ZERO_ADDRESS)


def test_token_rejects_value(chain, accounts, token):
    with pytest.raises(Revert):
        token.transfer(chain.context(accounts[0], 1), accounts[1], 0)
    with pytest.raises(Revert):
        chain.send_transaction(accounts[0], token.address, 1)


def test_lowercase_addresses_refer_to_the_same_holder(chain, accounts, token):
    owner, holder, spender = accounts[0], accounts[1], accounts[2]
    token.mint(chain.context(owner), holder.lower(), 100)
    assert token.balance_of(holder) == 100
    assert token.balance_of(holder.lower()) == 100

    token.approve(chain.context(holder), spender.lower(), 40)
    assert token.allowance(holder.lower(), spender) == 40
    token.transfer_from(chain.context(spender), holder.lower(), owner.lower(), 40)
    assert token.balance_of(owner) == 40
    assert token.allowance(holder, spender) == 0

    token.transfer_ownership(chain.context(owner), holder.lower())
    token.mint(chain.context(holder), holder, 1)
    assert token.balance_of(holder) == 61
