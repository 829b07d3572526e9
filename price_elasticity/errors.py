"""
Error taxonomy for the pricing engine

Engine functions raise these and never catch them; the caller (dashboard,
chat tool dispatcher) decides how to surface the message.
"""


class PricingModelError(Exception):
    """Base class for every engine error"""


class UnknownTierError(PricingModelError, KeyError):
    """Tier missing from a lookup table that has no fallback constant"""

    def __init__(self, tier, table='tiers'):
        self.tier = tier
        self.table = table
        super().__init__(f"Unknown tier '{tier}' in {table}")

    def __str__(self):
        return self.args[0]


class MissingDataError(PricingModelError):
    """No fixture rows available for a tier"""


class MissingParameterError(PricingModelError, ValueError):
    """A forecaster received a falsy required argument"""


class ConstraintViolationError(PricingModelError, ValueError):
    """Edited price falls outside the scenario's min/max constraints"""

    def __init__(self, price, min_price=None, max_price=None):
        self.price = price
        self.min_price = min_price
        self.max_price = max_price
        super().__init__(
            f"Price {price} outside allowed range [{min_price}, {max_price}]"
        )


class ScenarioNotFoundError(PricingModelError, KeyError):
    """Scenario id not present in the session"""

    def __init__(self, scenario_id):
        self.scenario_id = scenario_id
        super().__init__(f"Scenario not found: {scenario_id}")

    def __str__(self):
        return self.args[0]


class UnknownToolError(PricingModelError):
    """Chat tool name not registered"""
