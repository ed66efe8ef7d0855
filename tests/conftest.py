import pytest

from vtx_crowdsale.chain import Chain

GENESIS_TIME = 1_700_000_000


@pytest.fixture
def chain():
    return Chain(genesis_time=GENESIS_TIME)


@pytest.fixture
def accounts(chain):
    return [a.address for a in chain.accounts]
