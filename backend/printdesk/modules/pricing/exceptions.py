# printdesk/modules/pricing/exceptions.py
# Domain-specific exceptions for delivery pricing

from printdesk.core.exceptions import ConflictError, NotFoundError


class PricingRuleNotFoundError(NotFoundError):
    def __init__(self, rule_id: str):
        super().__init__(f"Pricing rule '{rule_id}' not found.")
        self.rule_id = rule_id


class NoMatchingRuleError(NotFoundError):
    def __init__(self, distance_km: float):
        super().__init__(f"No active pricing rule covers a distance of {distance_km} km.")
        self.distance_km = distance_km


class DuplicateTierError(ConflictError):
    def __init__(self, max_distance_km: float):
        super().__init__(f"A pricing rule for {max_distance_km} km already exists.")
        self.max_distance_km = max_distance_km
