"""
Migration Model
Tier-level cross-elasticity migration and segment-level spillover

Supports:
- Tier migration: subscribers lost to an own-price change move to substitute
  tiers in proportion to the cross elasticity (cross_elasticity['<from>_to_<to>'])
- Segment spillover: a price change on one customer segment pushes (or pulls)
  subscribers to (or from) the other segments of the same tier
"""

import numpy as np

from .config import CURRENT_PRICES, SEGMENT_MODEL
from .elasticity_model import tier_params
from .utils import round_half_up

# ============================================================================
# TIER MIGRATION
# ============================================================================


def estimate_migration(params, price_changes, current_distribution, current_prices=None):
    """
    Estimate the subscriber distribution across tiers after price changes

    Args:
        params: elasticity parameter table
        price_changes: {tier: new_price}
        current_distribution: {tier: subscriber_count}
        current_prices: {tier: price}, defaults to CURRENT_PRICES

    Returns:
        dict {tier: estimated_subscribers}
    """
    prices = current_prices or CURRENT_PRICES
    cross_elasticity = params.get('cross_elasticity') or {}
    new_distribution = dict(current_distribution)

    for tier, new_price in price_changes.items():
        current_price = prices.get(tier)
        if not current_price:
            continue

        price_change_pct = (new_price - current_price) / current_price

        # Own-price effect
        elasticity = tier_params(params, tier)['base_elasticity']
        demand_change_pct = elasticity * price_change_pct
        current_subs = current_distribution.get(tier, 0)
        lost_subs = current_subs * abs(demand_change_pct)

        new_distribution[tier] = current_subs + (-lost_subs if demand_change_pct < 0 else lost_subs)

        # Cross-price effect: positive cross elasticity means substitutes
        for other_tier, other_subs in current_distribution.items():
            if other_tier == tier:
                continue

            cross = cross_elasticity.get(f"{tier}_to_{other_tier}")
            if cross and cross > 0:
                migrants = lost_subs * cross * abs(price_change_pct)
                new_distribution[other_tier] = new_distribution.get(other_tier, other_subs) + migrants

    return new_distribution


# ============================================================================
# SEGMENT SPILLOVER
# ============================================================================


def migration_rate(demand_change_pct):
    """Share of the target segment that migrates, capped at SEGMENT_MODEL['migration_cap']"""
    return min(abs(demand_change_pct) * SEGMENT_MODEL['migration_factor'],
               SEGMENT_MODEL['migration_cap'])


def estimate_spillover_effects(target_subscribers, demand_change_pct, price_change_pct, other_segments):
    """
    Distribute migrants from a price-changed segment across the other segments

    A price increase is an outflow (negative deltas on the other segments), a
    decrease an inflow (positive deltas). Per-segment rounding means the
    deltas need not sum exactly to total_migration.

    Args:
        target_subscribers: subscribers in the targeted segment
        demand_change_pct: fractional demand change of the target segment
        price_change_pct: fractional price change
        other_segments: segment records with compositeKey and subscriber_count

    Returns:
        dict with {migration_rate, total_migration, direction, segments}
    """
    rate = migration_rate(demand_change_pct)
    total_migration = round_half_up(target_subscribers * rate)

    if price_change_pct > 0:
        direction, sign = 'outflow', -1
    elif price_change_pct < 0:
        direction, sign = 'inflow', 1
    else:
        direction, sign = 'none', 0

    weights = np.array([float(s.get('subscriber_count') or 0) for s in other_segments])
    total_weight = weights.sum() if len(weights) else 0.0
    shares = weights / total_weight if total_weight > 0 else np.zeros(len(weights))

    segments = []
    for segment, share in zip(other_segments, shares):
        segments.append({
            'compositeKey': segment.get('compositeKey'),
            'subscriber_count': float(segment.get('subscriber_count') or 0),
            'share': float(share),
            'delta_subscribers': sign * round_half_up(total_migration * share),
        })

    return {
        'migration_rate': rate,
        'total_migration': total_migration,
        'direction': direction,
        'segments': segments,
    }
