"""
Acquisition Elasticity Model
Linear response of weekly gross adds to a price change

Model: adds_1 = adds_0 * (1 + acquisition_elasticity * price_change_pct)
"""

import logging

from .errors import UnknownTierError
from .utils import round_half_up

logger = logging.getLogger(__name__)


def acquisition_elasticity_for(params, tier):
    entry = (params.get('acquisition_elasticity') or {}).get(tier)
    if not entry:
        raise UnknownTierError(tier, 'acquisition_elasticity')
    return entry['acquisition_elasticity']


def forecast_acquisition(params, tier, price_change_pct, baseline_acquisition):
    """
    Forecast weekly new subscribers after a price change

    Args:
        params: elasticity parameter table
        tier: tier name
        price_change_pct: fractional price change (0.10 for +10%)
        baseline_acquisition: current weekly new subscribers

    Returns:
        dict with {baseline_acquisition, forecasted_acquisition, change, change_percent}
    """
    acq_elasticity = acquisition_elasticity_for(params, tier)
    acq_change_pct = acq_elasticity * price_change_pct

    forecasted = round_half_up(baseline_acquisition * (1 + acq_change_pct))
    if forecasted < 0:
        logger.warning("Acquisition forecast %d for %s floored at 0", forecasted, tier)
        forecasted = 0

    return {
        'baseline_acquisition': baseline_acquisition,
        'forecasted_acquisition': forecasted,
        'change': round_half_up(forecasted - baseline_acquisition),
        'change_percent': acq_change_pct * 100,
    }
