from decimal import Decimal

import pytest

from vtx_crowdsale.units import duration, ether, to_tokens


def test_ether():
    assert ether(1) == 10**18
    assert ether("0.002") == 2 * 10**15
    assert ether(Decimal("1.5")) == 15 * 10**17


def test_ether_rejects_floats_and_sub_wei_amounts():
    with pytest.raises(TypeError):
        ether(0.5)
    with pytest.raises(ValueError):
        ether("0.0000000000000000001")


def test_duration():
    assert duration.minutes(1) == 60
    assert duration.days(1) == 86_400
    assert duration.weeks(1) == 7 * 86_400
    assert duration.years(1) == 365 * 86_400


def test_to_tokens():
    assert to_tokens(ether(6500)) == 6500.0
    assert to_tokens(1_500_000, decimals=6) == 1.5
