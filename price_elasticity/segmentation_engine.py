"""
Segmentation Engine
Customer segments on three axes, segment elasticity lookup, KPI aggregation
and segment-targeted scenario simulation

Composite key: "{acquisition}|{engagement}|{monetization}"
Segment elasticity table (segment_elasticity.json):
    {tier: {segment_elasticity: {composite_key: {<axis>_axis: {elasticity, ...}}}}}
Segment KPI rows (segment_kpis.csv):
    {tier, composite_key, subscriber_count, avg_churn_rate, avg_arpu, avg_watch_hours, avg_cac}
"""

import logging

import numpy as np

from .config import AXES, CHURN_BOUNDS, DEFAULT_TIME_HORIZON, SEGMENT_MODEL, WARNING_THRESHOLDS
from .elasticity_model import tier_params
from .errors import MissingDataError, MissingParameterError
from .migration_model import estimate_spillover_effects
from .revenue import percent_change
from .scenario_engine import check_constraints, simulate_scenario
from .time_series import project_time_series
from .utils import round_half_up, safe_divide

logger = logging.getLogger(__name__)

# ============================================================================
# AXIS VOCABULARIES
# ============================================================================

AXIS_DEFINITIONS = {
    'acquisition': [
        'habitual_streamers',
        'content_anchored_viewers',
        'at_risk_lapsers',
        'promo_only_users',
        'dormant_subscribers',
    ],
    'engagement': [
        'ad_value_seekers',
        'ad_tolerant_upgraders',
        'ad_free_loyalists',
        'price_triggered_downgraders',
        'tvod_inclined_buyers',
    ],
    'monetization': [
        'platform_bundled_acquirers',
        'tvod_to_svod_converters',
        'content_triggered_buyers',
        'deal_responsive_acquirers',
        'value_perception_buyers',
    ],
}

AXIS_LABELS = {
    'acquisition': 'Axis 3: Acquisition Price Sensitivity',
    'engagement': 'Axis 2: Engagement & Churn Propensity',
    'monetization': 'Axis 1: Monetization & Plan Type',
}

SEGMENT_DESCRIPTIONS = {
    # Acquisition price sensitivity
    'habitual_streamers': {
        'label': 'Habitual Streamers',
        'description': 'Top quartile frequency & recency',
        'elasticity_level': 'Very low churn elasticity',
    },
    'content_anchored_viewers': {
        'label': 'Content-Anchored Viewers',
        'description': 'High SVOD w/ genre affinity',
        'elasticity_level': 'Low churn if content available',
    },
    'at_risk_lapsers': {
        'label': 'At-Risk Lapsers',
        'description': 'Declining frequency, high inactivity',
        'elasticity_level': 'Moderate',
    },
    'promo_only_users': {
        'label': 'Promo-Only Users',
        'description': 'Engagement spikes only during discounts',
        'elasticity_level': 'Extreme churn elasticity',
    },
    'dormant_subscribers': {
        'label': 'Dormant Subscribers',
        'description': 'No usage for X days',
        'elasticity_level': 'Price irrelevant; experience/content first',
    },

    # Engagement & churn propensity
    'ad_value_seekers': {
        'label': 'Ad-Value Seekers',
        'description': 'Ad-supported plan, high ad completion, low ARPU',
        'elasticity_level': 'Highly price elastic, sensitive to small increases',
    },
    'ad_tolerant_upgraders': {
        'label': 'Ad-Tolerant Upgraders',
        'description': 'Started on ad-tier, now upgraded',
        'elasticity_level': 'Strong candidates for upsell elasticity modeling',
    },
    'ad_free_loyalists': {
        'label': 'Ad-Free Loyalists',
        'description': 'Long tenure on ad-free, low churn',
        'elasticity_level': 'Low churn elasticity, ARPU growth anchor',
    },
    'price_triggered_downgraders': {
        'label': 'Price-Triggered Downgraders',
        'description': 'Past switches from ad-free to ad-tier',
        'elasticity_level': 'Migration elasticity critical',
    },
    'tvod_inclined_buyers': {
        'label': 'TVOD-Inclined Buyers',
        'description': 'Has made at least one transactional purchase',
        'elasticity_level': 'Monetization expansion segment',
    },

    # Monetization & plan type
    'platform_bundled_acquirers': {
        'label': 'Platform-Bundled Acquirers',
        'description': 'App store / bundle-driven',
        'elasticity_level': 'Low-moderate',
    },
    'tvod_to_svod_converters': {
        'label': 'TVOD-to-SVOD Converters',
        'description': 'First transaction was TVOD',
        'elasticity_level': 'Low price sensitivity for entry',
    },
    'content_triggered_buyers': {
        'label': 'Content-Triggered Buyers',
        'description': 'Subscribes after viewing specific titles',
        'elasticity_level': 'Low',
    },
    'deal_responsive_acquirers': {
        'label': 'Deal-Responsive Acquirers',
        'description': 'Enters via discounts/free trial',
        'elasticity_level': 'Very high',
    },
    'value_perception_buyers': {
        'label': 'Value-Perception Buyers',
        'description': 'Subscribes at full price after browsing',
        'elasticity_level': 'Moderate',
    },
}


def parse_composite_key(composite_key):
    acquisition, engagement, monetization = composite_key.split('|')
    return {'acquisition': acquisition, 'engagement': engagement, 'monetization': monetization}


def format_segment_label(value):
    info = SEGMENT_DESCRIPTIONS.get(value)
    return info['label'] if info else value


def format_composite_key(composite_key):
    return ' | '.join(format_segment_label(part) for part in composite_key.split('|'))


def get_segment_info(value):
    return SEGMENT_DESCRIPTIONS.get(value)


def axis_for_segment(segment):
    """Axis whose vocabulary contains the segment, or None"""
    for axis, values in AXIS_DEFINITIONS.items():
        if segment in values:
            return axis
    return None


# ============================================================================
# SEGMENT KPIS
# ============================================================================


def index_segment_kpis(records):
    """Index KPI rows by 'tier|composite_key' so tiers never overwrite each other"""
    return {f"{r['tier']}|{r['composite_key']}": r for r in records}


def _segment_entry(index_key, kpis):
    parts = index_key.split('|')
    tier, composite_key = parts[0], '|'.join(parts[1:])
    return {
        **kpis,
        'compositeKey': composite_key,
        'tier': tier,
        **parse_composite_key(composite_key),
    }


def filter_segments(index, filters=None):
    """
    Segments matching every active axis filter

    Args:
        index: index_segment_kpis() output
        filters: {axis: [allowed values]}; empty or missing axis means no filter
    """
    filters = filters or {}
    results = []

    for index_key, kpis in index.items():
        entry = _segment_entry(index_key, kpis)
        if all(not filters.get(axis) or entry[axis] in filters[axis] for axis in AXES):
            results.append(entry)

    return results


def segments_for_tier(index, tier):
    return [
        _segment_entry(index_key, kpis)
        for index_key, kpis in index.items()
        if index_key.startswith(tier + '|')
    ]


def _weighted_avg(segments, metric, weights):
    values = np.array([float(s.get(metric) or 0) for s in segments])
    return float(np.average(values, weights=weights))


def aggregate_kpis(segments):
    """Subscriber-weighted KPI averages across segments"""
    empty = {
        'total_subscribers': 0,
        'weighted_churn': 0,
        'weighted_arpu': 0,
        'weighted_watch_hours': 0,
        'weighted_cac': 0,
        'segment_count': len(segments or []),
    }
    if not segments:
        return empty

    weights = np.array([float(s.get('subscriber_count') or 0) for s in segments])
    total = weights.sum()
    if total == 0:
        logger.warning("Aggregating %d segments with zero subscribers", len(segments))
        return empty

    return {
        'total_subscribers': round_half_up(total),
        'weighted_churn': _weighted_avg(segments, 'avg_churn_rate', weights),
        'weighted_arpu': _weighted_avg(segments, 'avg_arpu', weights),
        'weighted_watch_hours': _weighted_avg(segments, 'avg_watch_hours', weights),
        'weighted_cac': _weighted_avg(segments, 'avg_cac', weights),
        'segment_count': len(segments),
    }


def generate_segment_summary(composite_key, metrics):
    """One-line description of a segment from its size, churn and ARPU"""
    engagement = parse_composite_key(composite_key)['engagement']
    eng_info = SEGMENT_DESCRIPTIONS.get(engagement)

    churn_rate = float(metrics.get('avg_churn_rate') or 0)
    arpu = float(metrics.get('avg_arpu') or 0)
    subscribers = int(metrics.get('subscriber_count') or 0)

    size = 'Large' if subscribers > 2000 else 'Medium-sized' if subscribers > 1000 else 'Small'

    if churn_rate > 0.18:
        churn_risk = 'very high churn risk'
    elif churn_rate > 0.14:
        churn_risk = 'high churn risk'
    elif churn_rate > 0.10:
        churn_risk = 'moderate churn'
    else:
        churn_risk = 'stable retention'

    value_tier = 'premium' if arpu > 35 else 'mid-tier' if arpu > 25 else 'budget-conscious'
    sensitivity = eng_info['elasticity_level'].lower() if eng_info else 'moderate price sensitivity'

    if churn_rate > 0.15:
        return f"{size} {value_tier} segment with {churn_risk} - requires retention focus"
    if arpu > 30 and churn_rate < 0.10:
        return f"{size} high-value segment with excellent retention - key revenue driver"
    if subscribers > 2000:
        return f"Large {value_tier} segment with {churn_risk} - {sensitivity}"
    if arpu > 30:
        return f"Small premium segment with {churn_risk} - niche opportunity"
    return f"{size} {value_tier} segment - {sensitivity} with {churn_risk}"


# ============================================================================
# SEGMENT ELASTICITY
# ============================================================================


def resolve_segment_elasticity(segment_elasticity, params, tier, target_segment, axis=None):
    """
    Elasticity of a single segment value on one axis

    The first composite key containing target_segment wins. The axis is the
    explicit override, else the segment's position inside that key. Without
    a match the tier base elasticity is used.

    Returns:
        dict with {elasticity, composite_key, axis, source}
    """
    tier_table = ((segment_elasticity or {}).get(tier) or {}).get('segment_elasticity') or {}

    for composite_key, segment_data in tier_table.items():
        parts = composite_key.split('|')
        if target_segment not in parts:
            continue

        resolved_axis = axis or AXES[parts.index(target_segment)]
        axis_data = segment_data.get(f"{resolved_axis}_axis") or {}
        if axis_data.get('elasticity') is not None:
            return {
                'elasticity': axis_data['elasticity'],
                'composite_key': composite_key,
                'axis': resolved_axis,
                'source': 'segment',
            }
        break

    logger.warning("No segment elasticity for %s on %s, using tier base", target_segment, tier)
    return {
        'elasticity': tier_params(params, tier)['base_elasticity'],
        'composite_key': None,
        'axis': axis or axis_for_segment(target_segment),
        'source': 'tier_base',
    }


def segment_baseline(segments, target_segment, axis=None):
    """
    Aggregate baseline of the records belonging to target_segment

    Only the given axis is matched; without an axis a record matches when the
    segment appears on any axis.
    """
    axes = (axis,) if axis else AXES
    matched = [s for s in segments if any(s.get(a) == target_segment for a in axes)]
    kpis = aggregate_kpis(matched)

    return {
        'subscribers': kpis['total_subscribers'],
        'churn_rate': kpis['weighted_churn'],
        'arpu': kpis['weighted_arpu'],
        'revenue': kpis['total_subscribers'] * kpis['weighted_arpu'],
        'segment_count': kpis['segment_count'],
        'segments': matched,
    }


def _tier_totals(segments):
    subscribers = sum(float(s.get('subscriber_count') or 0) for s in segments)
    revenue = sum(float(s.get('subscriber_count') or 0) * float(s.get('avg_arpu') or 0)
                  for s in segments)
    return round_half_up(subscribers), revenue


# ============================================================================
# SEGMENT-TARGETED SIMULATION
# ============================================================================


def simulate_segment_scenario(scenario, params, segment_elasticity, segment_index, target_segment,
                              axis=None, weekly_records=None,
                              time_horizon=DEFAULT_TIME_HORIZON):
    """
    Simulate a price change aimed at one customer segment

    Args:
        scenario: scenario record
        params: elasticity parameter table
        segment_elasticity: segment elasticity table
        segment_index: index_segment_kpis() output
        target_segment: segment value on one axis, or 'all' for the tier path
        axis: explicit axis of target_segment (optional)
        weekly_records: weekly tier rows, needed only for target_segment='all'
        time_horizon: horizon key for the tier path (optional)

    Returns:
        segment SimulationResult dict
    """
    if target_segment in (None, 'all'):
        if weekly_records is None:
            raise MissingDataError('Weekly data is required for a tier-wide simulation')
        return simulate_scenario(scenario, params, weekly_records, time_horizon)

    config = scenario['config']
    tier = config['tier']
    current_price = config['current_price']
    new_price = config['new_price']
    if not current_price or not new_price:
        raise MissingParameterError('Missing required prices for segment forecast')
    price_change_pct = (new_price - current_price) / current_price

    logger.info("Simulating scenario %s for segment %s on %s", scenario.get('id'), target_segment, tier)

    tier_segments = segments_for_tier(segment_index, tier)
    if not tier_segments:
        raise MissingDataError(f"No segment data available for tier: {tier}")

    seg_elasticity = resolve_segment_elasticity(segment_elasticity, params, tier, target_segment, axis)
    elasticity = seg_elasticity['elasticity']

    baseline = segment_baseline(tier_segments, target_segment, seg_elasticity['axis'])
    if not baseline['subscribers']:
        raise MissingDataError(f"No segment records match {target_segment} in tier {tier}")

    # Direct impact on the targeted segment
    demand_change_pct = elasticity * price_change_pct
    forecasted_subs = max(0, round_half_up(baseline['subscribers'] * (1 + demand_change_pct)))

    churn_multiplier = 1 + elasticity * SEGMENT_MODEL['churn_pass_through'] * price_change_pct
    forecasted_churn = float(np.clip(baseline['churn_rate'] * churn_multiplier, *CHURN_BOUNDS))

    forecasted_arpu = baseline['arpu'] * (new_price / current_price)
    forecasted_revenue = forecasted_subs * forecasted_arpu

    # Spillover onto the rest of the tier
    matched_keys = {s['compositeKey'] for s in baseline['segments']}
    others = [s for s in tier_segments if s['compositeKey'] not in matched_keys]
    spillover = estimate_spillover_effects(baseline['subscribers'], demand_change_pct,
                                           price_change_pct, others)
    spillover_delta = sum(s['delta_subscribers'] for s in spillover['segments'])

    # Tier rollup, migrants valued at the tier average ARPU
    tier_subs, tier_revenue = _tier_totals(tier_segments)
    tier_arpu = safe_divide(tier_revenue, tier_subs) or 0.0
    target_delta = forecasted_subs - baseline['subscribers']

    forecasted_tier_subs = tier_subs + target_delta + spillover_delta
    forecasted_tier_revenue = (tier_revenue - baseline['revenue'] + forecasted_revenue
                               + spillover_delta * tier_arpu)

    time_series = project_time_series(
        {
            'base_subscribers': baseline['subscribers'],
            'forecasted_subscribers': forecasted_subs,
            'price_change_pct': price_change_pct * 100,
        },
        {'baseline_churn': baseline['churn_rate'], 'forecasted_churn': forecasted_churn},
        None,
        forecasted_arpu,
    )

    migration_pct = safe_divide(spillover['total_migration'], baseline['subscribers']) * 100

    return {
        'scenario_id': scenario.get('id'),
        'scenario_name': scenario.get('name'),
        'tier': tier,
        'target_segment': target_segment,
        'axis': seg_elasticity['axis'],
        'composite_key': seg_elasticity['composite_key'],
        'elasticity': elasticity,
        'elasticity_source': seg_elasticity['source'],
        'price_change_pct': price_change_pct * 100,
        'demand_change_pct': demand_change_pct * 100,

        'baseline': {
            'subscribers': baseline['subscribers'],
            'churn_rate': baseline['churn_rate'],
            'arpu': baseline['arpu'],
            'revenue': baseline['revenue'],
            'segment_count': baseline['segment_count'],
        },

        'forecasted': {
            'subscribers': forecasted_subs,
            'churn_rate': forecasted_churn,
            'arpu': forecasted_arpu,
            'revenue': forecasted_revenue,
        },

        'delta': {
            'subscribers': target_delta,
            'subscribers_pct': percent_change(baseline['subscribers'], forecasted_subs),
            'churn_rate': forecasted_churn - baseline['churn_rate'],
            'churn_rate_pct': percent_change(baseline['churn_rate'], forecasted_churn),
            'arpu': forecasted_arpu - baseline['arpu'],
            'arpu_pct': percent_change(baseline['arpu'], forecasted_arpu),
            'revenue': forecasted_revenue - baseline['revenue'],
            'revenue_pct': percent_change(baseline['revenue'], forecasted_revenue),
        },

        'spillover': {**spillover, 'net_delta': spillover_delta, 'migration_pct': migration_pct},

        'tier_totals': {
            'baseline': {
                'subscribers': tier_subs,
                'revenue': tier_revenue,
                'arpu': safe_divide(tier_revenue, tier_subs),
            },
            'forecasted': {
                'subscribers': forecasted_tier_subs,
                'revenue': forecasted_tier_revenue,
                'arpu': safe_divide(forecasted_tier_revenue, forecasted_tier_subs),
            },
            'delta': {
                'subscribers': forecasted_tier_subs - tier_subs,
                'subscribers_pct': percent_change(tier_subs, forecasted_tier_subs),
                'revenue': forecasted_tier_revenue - tier_revenue,
                'revenue_pct': percent_change(tier_revenue, forecasted_tier_revenue),
            },
        },

        'time_series': time_series,
        'warnings': generate_segment_warnings(price_change_pct, demand_change_pct,
                                              forecasted_churn, migration_pct),
        'constraints_met': check_constraints(scenario),
    }


def generate_segment_warnings(price_change_pct, demand_change_pct, forecasted_churn, migration_pct):
    warnings = []

    if abs(price_change_pct) * 100 > WARNING_THRESHOLDS['segment_price_change_pct']:
        warnings.append(
            f"Price change of {price_change_pct * 100:+.1f}% exceeds the 15% segment guardrail"
        )

    if abs(demand_change_pct) * 100 > WARNING_THRESHOLDS['segment_demand_change_pct']:
        warnings.append(
            f"Demand sensitivity of {abs(demand_change_pct) * 100:.1f}% exceeds 25% threshold"
        )

    if forecasted_churn > WARNING_THRESHOLDS['segment_churn_rate']:
        warnings.append(f"Forecasted churn of {forecasted_churn * 100:.1f}% exceeds 20%")

    if migration_pct > WARNING_THRESHOLDS['segment_migration_pct']:
        warnings.append(
            f"Spillover migration of {migration_pct:.1f}% of the target segment exceeds 15%"
        )

    return warnings
