"""
Price Elasticity Model
Constant-elasticity demand: Q1 = Q0 * (P1/P0)^elasticity

Elasticities come from a static parameter table (elasticity-params.json):
    tiers[tier] -> base_elasticity, confidence_interval, segments, cohort_elasticity
    time_horizon_adjustments[horizon] -> multiplier
"""

import logging

import numpy as np

from .config import FALLBACK_ELASTICITY
from .errors import MissingParameterError, UnknownTierError
from .utils import round_half_up

logger = logging.getLogger(__name__)


def tier_params(params, tier):
    """
    Tier entry of the elasticity table

    A tier missing from the table falls back to its published elasticity
    (FALLBACK_ELASTICITY) with a zero-width confidence interval. Tiers with
    no published value raise UnknownTierError.
    """
    tiers = params.get('tiers') or {}
    if tier in tiers:
        return tiers[tier]

    if tier in FALLBACK_ELASTICITY:
        logger.warning("No elasticity table entry for tier %s, using fallback %.2f",
                       tier, FALLBACK_ELASTICITY[tier])
        return {
            'base_elasticity': FALLBACK_ELASTICITY[tier],
            'confidence_interval': 0.0,
            'segments': {},
            'cohort_elasticity': {},
        }

    raise UnknownTierError(tier)


def _horizon_multiplier(params, time_horizon):
    adjustment = (params.get('time_horizon_adjustments') or {}).get(time_horizon)
    if isinstance(adjustment, dict):
        return adjustment.get('multiplier')
    return adjustment


def resolve_elasticity(params, tier, segment=None, cohort=None, time_horizon=None):
    """
    Resolve the elasticity for a tier/segment/cohort/horizon combination

    Precedence: tier base -> segment -> cohort, then the horizon multiplier
    scales whichever value survived. Only the segment overrides the
    confidence interval.

    Args:
        params: elasticity parameter table
        tier: tier name (ad_supported, ad_free, annual)
        segment: tier segment name, e.g. 'new_0_3mo' (optional)
        cohort: single {cohort_type: cohort_value} mapping (optional)
        time_horizon: key of time_horizon_adjustments (optional)

    Returns:
        dict with {elasticity, confidence_interval, lower_bound, upper_bound}
    """
    entry = tier_params(params, tier)

    elasticity = entry['base_elasticity']
    confidence_interval = entry.get('confidence_interval', 0.0)

    segment_entry = (entry.get('segments') or {}).get(segment) if segment else None
    if segment_entry:
        elasticity = segment_entry['elasticity']
        confidence_interval = segment_entry.get('confidence_interval', confidence_interval)

    if cohort:
        cohort_type, cohort_value = next(iter(cohort.items()))
        cohort_elasticity = (entry.get('cohort_elasticity') or {}).get(cohort_type) or {}
        if cohort_elasticity.get(cohort_value):
            elasticity = cohort_elasticity[cohort_value]

    if time_horizon:
        multiplier = _horizon_multiplier(params, time_horizon)
        if multiplier:
            elasticity = elasticity * multiplier

    return {
        'elasticity': elasticity,
        'confidence_interval': confidence_interval,
        'lower_bound': elasticity - confidence_interval,
        'upper_bound': elasticity + confidence_interval,
    }


def forecast_demand(current_price, new_price, base_subscribers, elasticity):
    """
    Forecast subscribers after a price change

    Args:
        current_price: price today
        new_price: proposed price
        base_subscribers: subscribers at current_price
        elasticity: price elasticity coefficient (negative)

    Returns:
        dict with {base_subscribers, forecasted_subscribers, change,
                   percent_change, price_ratio, price_change_pct}
    """
    if not current_price or not new_price or not base_subscribers or not elasticity:
        raise MissingParameterError('Missing required parameters for demand forecast')

    price_ratio = new_price / current_price
    forecasted = float(base_subscribers * np.power(price_ratio, elasticity))
    change = forecasted - base_subscribers

    return {
        'base_subscribers': base_subscribers,
        'forecasted_subscribers': max(0, round_half_up(forecasted)),
        'change': round_half_up(change),
        'percent_change': change / base_subscribers * 100,
        'price_ratio': price_ratio,
        'price_change_pct': (price_ratio - 1) * 100,
    }


def calculate_wtp(params, tier):
    """Willingness-to-pay distribution for a tier"""
    wtp = (params.get('willingness_to_pay') or {}).get(tier)
    if not wtp:
        raise UnknownTierError(tier, 'willingness_to_pay')
    return wtp


def get_elasticity_breakdown(params, tier):
    """Base, segment and cohort elasticities for a tier"""
    entry = tier_params(params, tier)
    return {
        'base': entry['base_elasticity'],
        'segments': entry.get('segments') or {},
        'cohorts': entry.get('cohort_elasticity') or {},
        'confidence_interval': entry.get('confidence_interval', 0.0),
    }
