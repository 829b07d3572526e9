"""
Churn Elasticity Model
Linear pass-through of a price change into the churn rate

Model: churn_1 = churn_0 * (1 + churn_elasticity * price_change_pct)
"""

import logging

import numpy as np

from .config import CHURN_BOUNDS
from .errors import UnknownTierError

logger = logging.getLogger(__name__)


def churn_elasticity_for(params, tier):
    entry = (params.get('churn_elasticity') or {}).get(tier)
    if not entry:
        raise UnknownTierError(tier, 'churn_elasticity')
    return entry['churn_elasticity']


def forecast_churn(params, tier, price_change_pct, baseline_churn):
    """
    Forecast churn rate after a price change

    Args:
        params: elasticity parameter table
        tier: tier name
        price_change_pct: fractional price change (0.10 for +10%)
        baseline_churn: current churn rate

    Returns:
        dict with {baseline_churn, forecasted_churn, change, change_percent}
    """
    churn_elasticity = churn_elasticity_for(params, tier)
    churn_change_pct = churn_elasticity * price_change_pct

    raw = baseline_churn * (1 + churn_change_pct)
    forecasted_churn = float(np.clip(raw, *CHURN_BOUNDS))
    if forecasted_churn != raw:
        logger.warning("Churn forecast %.4f for %s clamped to %.4f", raw, tier, forecasted_churn)

    return {
        'baseline_churn': baseline_churn,
        'forecasted_churn': forecasted_churn,
        'change': forecasted_churn - baseline_churn,
        'change_percent': churn_change_pct * 100,
    }
