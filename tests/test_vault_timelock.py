import pytest

from vtx_crowdsale.chain import NotOwner, Revert
from vtx_crowdsale.erc20 import VTXToken
from vtx_crowdsale.project_constants import ZERO_ADDRESS
from vtx_crowdsale.timelock import TokenTimelock
from vtx_crowdsale.units import duration, ether
from vtx_crowdsale.vault import RefundVault, VaultState


@pytest.fixture
def vault(chain, accounts):
    return chain.deploy(RefundVault, chain.context(accounts[0]), accounts[1])


def test_vault_rejects_zero_wallet(chain, accounts):
    with pytest.raises(Revert):
        chain.deploy(RefundVault, chain.context(accounts[0]), ZERO_ADDRESS)


def test_only_owner_deposits(chain, accounts, vault):
    with pytest.raises(NotOwner):
        vault.deposit(chain.context(accounts[2], ether(1)), accounts[2])
    vault.deposit(chain.context(accounts[0], ether(1)), accounts[2])
    assert vault.deposited(accounts[2]) == ether(1)
    assert vault.state == VaultState.ACTIVE


def test_close_releases_funds_to_wallet(chain, accounts, vault):
    vault.deposit(chain.context(accounts[0], ether(3)), accounts[2])
    vault.close(chain.context(accounts[0]))
    assert vault.state == VaultState.CLOSED
    assert chain.balance_of(accounts[1]) == ether(103)
    with pytest.raises(Revert):
        vault.deposit(chain.context(accounts[0], ether(1)), accounts[2])
    with pytest.raises(Revert):
        vault.enable_refunds(chain.context(accounts[0]))


def test_refunds(chain, accounts, vault):
    vault.deposit(chain.context(accounts[0], ether(2)), accounts[2])
    with pytest.raises(Revert):
        vault.refund(chain.context(accounts[2]), accounts[2])

    vault.enable_refunds(chain.context(accounts[0]))
    assert vault.refund(chain.context(accounts[5]), accounts[2]) == ether(2)
    assert chain.balance_of(accounts[2]) == ether(102)
    # second refund pays nothing
    assert vault.refund(chain.context(accounts[2]), accounts[2]) == 0
    [refunded, _] = chain.events_named("Refunded")
    assert refunded.args == {"beneficiary": accounts[2], "wei_amount": ether(2)}


@pytest.fixture
def token(chain, accounts):
    return chain.deploy(VTXToken, chain.context(accounts[0]), "VTX Token", "VTX", 18)


def test_timelock_release_time_must_be_in_future(chain, accounts, token):
    with pytest.raises(Revert):
        chain.deploy(
            TokenTimelock, chain.context(accounts[0]), token, accounts[1], chain.latest_time()
        )


def test_timelock_releases_after_release_time(chain, accounts, token):
    release_time = chain.latest_time() + duration.days(1)
    timelock = chain.deploy(
        TokenTimelock, chain.context(accounts[0]), token, accounts[1], release_time
    )
    token.mint(chain.context(accounts[0]), timelock.address, 1_000)

    with pytest.raises(Revert):
        timelock.release(chain.context(accounts[1]))

    chain.increase_time_to(release_time)
    assert timelock.release(chain.context(accounts[3])) == 1_000
    assert token.balance_of(accounts[1]) == 1_000

    with pytest.raises(Revert):
        timelock.release(chain.context(accounts[1]))


def test_vault_deposits_ignore_address_case(chain, accounts, vault):
    vault.deposit(chain.context(accounts[0], ether(1)), accounts[2].lower())
    assert vault.deposited(accounts[2]) == ether(1)

    vault.enable_refunds(chain.context(accounts[0]))
    assert vault.refund(chain.context(accounts[5]), accounts[2]) == ether(1)
    assert vault.deposited(accounts[2].lower()) == 0


def test_timelock_releases_to_checksummed_beneficiary(chain, accounts, token):
    release_time = chain.latest_time() + duration.days(1)
    timelock = chain.deploy(
        TokenTimelock, chain.context(accounts[0]), token, accounts[1].lower(), release_time
    )
    assert timelock.beneficiary == accounts[1]
    token.mint(chain.context(accounts[0]), timelock.address, 5)
    chain.increase_time_to(release_time)
    timelock.release(chain.context(accounts[1]))
    assert token.balance_of(accounts[1]) == 5
