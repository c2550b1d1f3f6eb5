from decimal import Decimal

import pytest

from commission_recon.config import get_default_config
from commission_recon.errors import PolicyConfigError
from commission_recon.models import CommissionTier, ProductClass
from commission_recon.policy import CommissionPolicy

SAMPLE_TOTALS = [
    "0", "0.01", "5000", "9999", "9999.99", "9999.995", "10000", "25000.50",
    "49999.99", "49999.999", "50000", "75000", "1000000000",
]


def tier(name, lo, hi, repeat="0.02", new="0.03", incentive="0.03", bonus="0"):
    return CommissionTier(
        name=name,
        min_sales=Decimal(lo),
        max_sales=Decimal(hi) if hi is not None else None,
        repeat_rate=Decimal(repeat),
        new_rate=Decimal(new),
        incentive_rate=Decimal(incentive),
        bonus=Decimal(bonus),
    )


def test_default_policy_tiers(policy):
    assert [t.name for t in policy.tiers] == ["Tier 1", "Tier 2", "Tier 3"]
    assert policy.tier_for(Decimal("9999.99")).name == "Tier 1"
    assert policy.tier_for(Decimal("10000")).name == "Tier 2"
    assert policy.tier_for(Decimal("49999.99")).name == "Tier 2"
    assert policy.tier_for(Decimal("50000")).name == "Tier 3"


def test_tier_lookup_is_total_and_partitions(policy):
    for raw in SAMPLE_TOTALS:
        total = Decimal(raw)
        matches = []
        for idx, t in enumerate(policy.tiers):
            upper = policy.tiers[idx + 1].min_sales if idx + 1 < len(policy.tiers) else None
            if t.min_sales <= total and (upper is None or total < upper):
                matches.append(t)
        assert len(matches) == 1
        assert policy.tier_for(total) is matches[0]


def test_sub_cent_totals_between_bounds_still_get_a_tier(policy):
    assert policy.tier_for(Decimal("9999.995")).name == "Tier 1"


def test_default_rates_and_bonus(policy):
    t2 = policy.tier_for(Decimal("20000"))
    assert policy.rate_for(t2, ProductClass.REPEAT) == Decimal("0.01")
    assert policy.rate_for(t2, ProductClass.NEW) == Decimal("0.02")
    assert policy.rate_for(t2, ProductClass.INCENTIVE) == Decimal("0.03")
    assert t2.bonus == Decimal("100")
    assert policy.tier_for(Decimal("1")).bonus == Decimal("0")
    assert policy.tier_for(Decimal("60000")).bonus == Decimal("300")


def test_incentive_override_applies_only_to_incentive(policy):
    t1 = policy.tiers[0]
    assert policy.rate_for(t1, ProductClass.INCENTIVE, Decimal("0.05")) == Decimal("0.05")
    assert policy.rate_for(t1, ProductClass.REPEAT, Decimal("0.05")) == Decimal("0.02")


def test_gap_rejected():
    with pytest.raises(PolicyConfigError, match="Gap"):
        CommissionPolicy(tiers=(tier("a", "0", "9999"), tier("b", "10000", None)))


def test_overlap_rejected():
    with pytest.raises(PolicyConfigError, match="overlap"):
        CommissionPolicy(tiers=(tier("a", "0", "10000"), tier("b", "10000", None)))


def test_must_start_at_zero_and_end_unbounded():
    with pytest.raises(PolicyConfigError):
        CommissionPolicy(tiers=(tier("a", "1", None),))
    with pytest.raises(PolicyConfigError, match="unbounded"):
        CommissionPolicy(tiers=(tier("a", "0", "9999.99"), tier("b", "10000", "20000")))
    with pytest.raises(PolicyConfigError):
        CommissionPolicy(tiers=())


def test_negative_rate_rejected():
    with pytest.raises(PolicyConfigError):
        CommissionPolicy(tiers=(tier("a", "0", None, repeat="-0.01"),))


def test_from_config_uses_policy_section():
    cfg = get_default_config()
    cfg["policy"]["tiers"] = [
        {"name": "Flat", "min": 0, "max": None, "repeat_rate": 0.05, "new_rate": 0.06, "bonus": 10},
    ]
    cfg["policy"]["incentive_rate"] = 0.07
    policy = CommissionPolicy.from_config(cfg)
    assert len(policy.tiers) == 1
    only = policy.tiers[0]
    assert only.repeat_rate == Decimal("0.05")
    assert only.incentive_rate == Decimal("0.07")


def test_from_config_malformed_tier():
    cfg = get_default_config()
    cfg["policy"]["tiers"] = [{"name": "Broken", "min": 0, "max": None}]
    with pytest.raises(PolicyConfigError, match="Malformed"):
        CommissionPolicy.from_config(cfg)


def test_describe_lists_each_tier(policy):
    lines = policy.describe()
    assert len(lines) == 3
    assert "Repeat 2%" in lines[0]
    assert "Repeat 0.5%" in lines[2]
