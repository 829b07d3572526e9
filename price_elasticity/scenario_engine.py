"""
Scenario Engine
Simulate a pricing scenario end to end and compare scenarios

Pipeline per call:
    baseline -> elasticity -> demand / churn / acquisition -> revenue
    -> ARPU / CLTV -> net adds -> 12-month time series -> warnings, constraints
"""

import logging
from dataclasses import dataclass

from .acquisition_model import forecast_acquisition
from .churn_model import forecast_churn
from .config import BUNDLE, DEFAULT_TIME_HORIZON, FORECAST_MONTHS, WARNING_THRESHOLDS
from .data_loader import latest_record
from .elasticity_model import forecast_demand, resolve_elasticity
from .errors import MissingDataError
from .revenue import calculate_arpu_cltv, calculate_revenue_impact
from .time_series import project_time_series
from .utils import round_half_up

logger = logging.getLogger(__name__)


# ============================================================================
# TIER KINDS
# ============================================================================


@dataclass(frozen=True)
class StandardTier:
    name: str

    def lookup_tier(self, table):
        return self.name


@dataclass(frozen=True)
class BundleTier:
    """Bundle plan without history of its own, modeled off a base tier"""

    name: str = 'bundle'
    base_tier: str = BUNDLE['base_tier']
    potential_pct: float = BUNDLE['potential_pct']
    churn_factor: float = BUNDLE['churn_factor']
    default_price: float = BUNDLE['default_price']

    def lookup_tier(self, table):
        # Bundle-specific parameters win when the table carries them
        return self.name if self.name in (table or {}) else self.base_tier


def tier_kind(tier):
    if tier == 'bundle':
        return BundleTier()
    return StandardTier(tier)


# ============================================================================
# BASELINE
# ============================================================================


def get_baseline_metrics(weekly_records, tier, scenario=None):
    """
    Baseline KPIs from the latest week of tier data

    Returns:
        dict with {active_subscribers, churn_rate, new_subscribers, revenue,
                   arpu, is_bundle} (+ base_tier for bundles)
    """
    kind = tier_kind(tier)

    if isinstance(kind, BundleTier):
        try:
            latest = latest_record(weekly_records, kind.base_tier)
        except MissingDataError as e:
            raise MissingDataError(
                f"No data available for {kind.base_tier} tier (needed for bundle baseline)"
            ) from e

        subscribers = round_half_up((latest.get('active_subscribers') or 0) * kind.potential_pct)
        arpu = ((scenario or {}).get('config') or {}).get('new_price') or kind.default_price

        return {
            'active_subscribers': subscribers,
            'churn_rate': (latest.get('churn_rate') or 0) * kind.churn_factor,
            'new_subscribers': round_half_up((latest.get('new_subscribers') or 0) * kind.potential_pct),
            'revenue': subscribers * arpu,
            'arpu': arpu,
            'is_bundle': True,
            'base_tier': kind.base_tier,
        }

    latest = latest_record(weekly_records, tier)
    return {
        'active_subscribers': latest.get('active_subscribers') or 0,
        'churn_rate': latest.get('churn_rate') or 0,
        'new_subscribers': latest.get('new_subscribers') or 0,
        'revenue': latest.get('revenue') or 0,
        'arpu': latest.get('arpu') or 0,
        'is_bundle': False,
    }


# ============================================================================
# SIMULATION
# ============================================================================


def simulate_scenario(scenario, params, weekly_records, time_horizon=DEFAULT_TIME_HORIZON,
                      months=FORECAST_MONTHS):
    """
    Simulate a pricing scenario

    Args:
        scenario: scenario record
        params: elasticity parameter table
        weekly_records: weekly aggregated tier rows
        time_horizon: key of time_horizon_adjustments
        months: forecast horizon in months

    Returns:
        SimulationResult dict
    """
    config = scenario['config']
    tier = config['tier']
    current_price = config['current_price']
    new_price = config['new_price']
    kind = tier_kind(tier)

    logger.info("Simulating scenario %s for tier %s", scenario.get('id'), tier)

    baseline = get_baseline_metrics(weekly_records, tier, scenario)
    logger.debug("Baseline metrics: %s", baseline)

    elasticity_info = resolve_elasticity(
        params, kind.lookup_tier(params.get('tiers')), time_horizon=time_horizon
    )

    price_change_pct = (new_price - current_price) / current_price

    demand = forecast_demand(current_price, new_price, baseline['active_subscribers'],
                             elasticity_info['elasticity'])
    churn = forecast_churn(params, kind.lookup_tier(params.get('churn_elasticity')),
                           price_change_pct, baseline['churn_rate'])
    acquisition = forecast_acquisition(params, kind.lookup_tier(params.get('acquisition_elasticity')),
                                       price_change_pct, baseline['new_subscribers'])

    revenue = calculate_revenue_impact(demand['forecasted_subscribers'], new_price,
                                       baseline['active_subscribers'], current_price)
    arpu = calculate_arpu_cltv(baseline['arpu'], new_price)

    # Net adds = acquisitions - churned subscribers
    forecasted_net_adds = acquisition['forecasted_acquisition'] - round_half_up(
        demand['forecasted_subscribers'] * churn['forecasted_churn'])
    baseline_net_adds = baseline['new_subscribers'] - round_half_up(
        baseline['active_subscribers'] * baseline['churn_rate'])

    time_series = project_time_series(demand, churn, acquisition, new_price, months)

    return {
        'scenario_id': scenario.get('id'),
        'scenario_name': scenario.get('name'),
        'elasticity': elasticity_info['elasticity'],
        'confidence_interval': elasticity_info['confidence_interval'],

        'baseline': {
            'subscribers': baseline['active_subscribers'],
            'churn_rate': baseline['churn_rate'],
            'new_subscribers': baseline['new_subscribers'],
            'revenue': baseline['revenue'],
            'arpu': baseline['arpu'],
            'cltv': arpu['baseline_cltv'],
            'net_adds': baseline_net_adds,
        },

        'forecasted': {
            'subscribers': demand['forecasted_subscribers'],
            'churn_rate': churn['forecasted_churn'],
            'new_subscribers': acquisition['forecasted_acquisition'],
            'revenue': revenue['forecasted_revenue'],
            'arpu': arpu['forecasted_arpu'],
            'cltv': arpu['forecasted_cltv'],
            'net_adds': forecasted_net_adds,
        },

        'delta': {
            'subscribers': demand['change'],
            'subscribers_pct': demand['percent_change'],
            'churn_rate': churn['change'],
            'churn_rate_pct': churn['change_percent'],
            'new_subscribers': acquisition['change'],
            'new_subscribers_pct': acquisition['change_percent'],
            'revenue': revenue['change'],
            'revenue_pct': revenue['percent_change'],
            'arpu': arpu['arpu_change'],
            'arpu_pct': arpu['arpu_pct'],
            'cltv': arpu['cltv_change'],
            'cltv_pct': arpu['cltv_pct'],
            'net_adds': forecasted_net_adds - baseline_net_adds,
        },

        'time_series': time_series,
        'warnings': generate_warnings(scenario, churn, demand),
        'constraints_met': check_constraints(scenario),
    }


def generate_warnings(scenario, churn, demand):
    """Advisory messages; each threshold is checked independently"""
    warnings = []

    if churn['change_percent'] > WARNING_THRESHOLDS['churn_change_pct']:
        warnings.append(
            f"Churn rate increases by {churn['change_percent']:.1f}% (exceeds 10% threshold)"
        )

    if demand['percent_change'] < WARNING_THRESHOLDS['subscriber_change_pct']:
        warnings.append(
            f"Subscriber base decreases by {abs(demand['percent_change']):.1f}% (exceeds 5% threshold)"
        )

    config = scenario['config']
    price_change = (config['new_price'] - config['current_price']) / config['current_price'] * 100
    if price_change > WARNING_THRESHOLDS['price_increase_pct']:
        warnings.append(f"Price increase of {price_change:.1f}% may be too aggressive")

    return warnings


def check_constraints(scenario):
    """
    True when the scenario meets platform and policy constraints

    platform_compliant must be explicitly True; the 12-month limit and the
    30-day notice only fail when explicitly False.
    """
    constraints = scenario.get('constraints')
    if not constraints:
        return True

    checks = [
        constraints.get('platform_compliant') is True,
        constraints.get('price_change_12mo_limit') is not False,
        constraints.get('notice_period_30d') is not False,
    ]
    return all(checks)


# ============================================================================
# COMPARISON & RANKING
# ============================================================================


def compare_scenarios(scenarios, params, weekly_records, time_horizon=DEFAULT_TIME_HORIZON):
    """Simulate each scenario; a failing one yields {scenario_id, error}"""
    results = []

    for scenario in scenarios:
        try:
            results.append(simulate_scenario(scenario, params, weekly_records, time_horizon))
        except Exception as e:
            logger.exception("Error simulating scenario %s", scenario.get('id'))
            results.append({'scenario_id': scenario.get('id'), 'error': str(e)})

    return results


def _pct(result, key):
    return result['delta'].get(key) or 0.0


def score_result(result, objective='balanced'):
    if objective == 'growth':
        return _pct(result, 'subscribers_pct')
    if objective == 'churn':
        # Lower churn increase ranks higher
        return -_pct(result, 'churn_rate_pct')
    if objective == 'balanced':
        score = _pct(result, 'revenue_pct') * 0.6 + _pct(result, 'subscribers_pct') * 0.4
        if _pct(result, 'churn_rate_pct') > WARNING_THRESHOLDS['churn_change_pct']:
            score -= 10
        return score
    return _pct(result, 'revenue_pct')


def rank_scenarios(results, objective='balanced'):
    """
    Rank simulation results by objective

    Args:
        results: simulate_scenario outputs (error placeholders are dropped)
        objective: 'revenue', 'growth', 'churn' or 'balanced'

    Returns:
        list of results with an added 'score', best first
    """
    scored = [
        {**result, 'score': score_result(result, objective)}
        for result in results if not result.get('error')
    ]
    return sorted(scored, key=lambda r: r['score'], reverse=True)


def export_scenario_result(result):
    """Flatten a simulation result into a single CSV-ready row"""
    return {
        'scenario_id': result['scenario_id'],
        'scenario_name': result['scenario_name'],
        'elasticity': result['elasticity'],

        'baseline_subscribers': result['baseline']['subscribers'],
        'baseline_revenue': result['baseline']['revenue'],
        'baseline_churn_rate': result['baseline']['churn_rate'],
        'baseline_arpu': result['baseline']['arpu'],

        'forecasted_subscribers': result['forecasted']['subscribers'],
        'forecasted_revenue': result['forecasted']['revenue'],
        'forecasted_churn_rate': result['forecasted']['churn_rate'],
        'forecasted_arpu': result['forecasted']['arpu'],

        'delta_subscribers': result['delta']['subscribers'],
        'delta_subscribers_pct': result['delta']['subscribers_pct'],
        'delta_revenue': result['delta']['revenue'],
        'delta_revenue_pct': result['delta']['revenue_pct'],
        'delta_churn_rate': result['delta']['churn_rate'],

        'warnings': '; '.join(result['warnings']),
        'constraints_met': result['constraints_met'],
    }
