import pytest

from printdesk.core.exceptions import InputValidationError
from printdesk.modules.pricing.commission import split_commission


def test_commission_plus_revenue_equals_fee_for_whole_fees():
    for fee in range(0, 1001):
        for pct in range(0, 101, 5):
            split = split_commission(fee, pct)
            assert split.agent_commission + split.company_revenue == fee
            assert split.company_revenue >= 0


def test_commission_is_rounded_half_up_once():
    assert split_commission(50, 70).agent_commission == 35
    assert split_commission(5, 50).agent_commission == 3  # 2.5
    split = split_commission(15, 70)  # 10.5
    assert (split.agent_commission, split.company_revenue) == (11, 4)


def test_commission_never_exceeds_sub_unit_fee():
    split = split_commission(0.6, 100)
    assert split.agent_commission == 0.6
    assert split.company_revenue == 0


@pytest.mark.parametrize("fee, pct", [(-1, 70), (100, -5), (100, 101)])
def test_invalid_inputs_are_rejected(fee, pct):
    with pytest.raises(InputValidationError):
        split_commission(fee, pct)
