"""
Discovery+ Price Elasticity POC engine
"""

from .elasticity_model import forecast_demand, resolve_elasticity
from .errors import (
    ConstraintViolationError,
    MissingDataError,
    MissingParameterError,
    PricingModelError,
    ScenarioNotFoundError,
    UnknownTierError,
    UnknownToolError,
)
from .scenario_engine import simulate_scenario
from .segmentation_engine import simulate_segment_scenario
from .session import PricingSession

__version__ = '0.1.0'
