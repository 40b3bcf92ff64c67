import math

import pytest

from printdesk.core.exceptions import InputValidationError
from printdesk.db.schemas.pricing_schemas import PricingRuleCreate, PricingRuleUpdate
from printdesk.modules.pricing.exceptions import DuplicateTierError, NoMatchingRuleError, PricingRuleNotFoundError

from fakes import seed_rule


@pytest.fixture
def tiers(store):
    seed_rule(store, "r10", 10, 80)
    seed_rule(store, "r5", 5, 50)


async def test_narrowest_covering_tier_wins(pricing_service, tiers):
    price = await pricing_service.resolve_price(7)
    assert price.applicable_rule.id == "r10"
    price = await pricing_service.resolve_price(5)
    assert price.applicable_rule.id == "r5"


async def test_distance_beyond_largest_tier_has_no_rule(pricing_service, tiers):
    with pytest.raises(NoMatchingRuleError):
        await pricing_service.resolve_price(11)


async def test_resolve_price_splits_commission(pricing_service, tiers):
    price = await pricing_service.resolve_price(4)
    assert (price.base_price, price.agent_commission, price.company_revenue) == (50, 35, 15)


async def test_inactive_rules_are_skipped(store, pricing_service):
    seed_rule(store, "r5", 5, 50, isActive=False)
    seed_rule(store, "r10", 10, 80)
    price = await pricing_service.resolve_price(3)
    assert price.applicable_rule.id == "r10"


@pytest.mark.parametrize("distance", [-1, math.nan, math.inf])
async def test_invalid_distance(pricing_service, tiers, distance):
    with pytest.raises(InputValidationError):
        await pricing_service.resolve_price(distance)


async def test_legacy_rule_without_percentage_defaults_to_70(store, pricing_service):
    seed_rule(store, "old", 5, 100, agentCommissionPercentage=None)
    price = await pricing_service.resolve_price(1)
    assert price.agent_commission == 70
    assert price.applicable_rule.description == "Up to 5 km"


async def test_create_rule_defaults_and_audit(store, pricing_service):
    rule = await pricing_service.create_rule(PricingRuleCreate(maxDistanceKm=3, price=40))
    assert rule.description == "Up to 3 km"
    assert rule.agent_commission_percentage == 70
    actions = [entry["action"] for entry in store.all("audit_logs")]
    assert actions == ["create_pricing_rule"]


async def test_duplicate_tier_rejected_even_if_inactive(store, pricing_service):
    seed_rule(store, "r5", 5, 50, isActive=False)
    with pytest.raises(DuplicateTierError):
        await pricing_service.create_rule(PricingRuleCreate(maxDistanceKm=5, price=60))


async def test_update_onto_existing_tier_rejected(pricing_service, tiers):
    with pytest.raises(DuplicateTierError):
        await pricing_service.update_rule(PricingRuleUpdate(id="r10", maxDistanceKm=5))


async def test_update_partial_fields(pricing_service, tiers):
    rule = await pricing_service.update_rule(PricingRuleUpdate(id="r10", price=90))
    assert rule.price == 90
    assert rule.max_distance_km == 10


async def test_update_and_delete_missing_rule(pricing_service):
    with pytest.raises(PricingRuleNotFoundError):
        await pricing_service.update_rule(PricingRuleUpdate(id="nope", price=10))
    with pytest.raises(PricingRuleNotFoundError):
        await pricing_service.delete_rule("nope")


async def test_list_rules_sorted_ascending(pricing_service, tiers):
    rules = await pricing_service.list_rules()
    assert [r.max_distance_km for r in rules] == [5, 10]
