"""
Chat Tools
Functions the assistant can call, plus their OpenAI function-calling schemas

Every tool takes the PricingSession and a dict of arguments and returns a
JSON-serializable dict. Transport, streaming and prompting live elsewhere.
"""

import json
import logging
from dataclasses import asdict, dataclass
from enum import Enum

from .config import BUNDLE, CURRENT_PRICES
from .data_loader import latest_record, weekly_data_for_tier
from .elasticity_model import resolve_elasticity
from .errors import PricingModelError, UnknownTierError, UnknownToolError
from .scenario_engine import rank_scenarios
from .scenarios import TIER_LABELS, tier_label
from .utils import format_currency, format_signed_pct

logger = logging.getLogger(__name__)


# ============================================================================
# GOALS & CHARTS
# ============================================================================


class ScenarioGoal(str, Enum):
    MAXIMIZE_REVENUE = 'maximize_revenue'
    GROW_SUBSCRIBERS = 'grow_subscribers'
    REDUCE_CHURN = 'reduce_churn'
    BALANCED = 'balanced'


@dataclass(frozen=True)
class Strategy:
    tier: str
    price_change_pct: float   # fractional, 0.10 = +10%
    objective: str            # rank_scenarios objective
    rationale: str


GOAL_STRATEGIES = {
    ScenarioGoal.MAXIMIZE_REVENUE: Strategy(
        tier='ad_free',
        price_change_pct=0.10,
        objective='revenue',
        rationale='Ad-Free is the least elastic monthly tier, so a moderate increase '
                  'lifts revenue with limited subscriber loss.',
    ),
    ScenarioGoal.GROW_SUBSCRIBERS: Strategy(
        tier='ad_supported',
        price_change_pct=-0.15,
        objective='growth',
        rationale='Ad-Supported subscribers are the most price sensitive, so a price cut '
                  'produces the largest subscriber gain.',
    ),
    ScenarioGoal.REDUCE_CHURN: Strategy(
        tier='annual',
        price_change_pct=-0.10,
        objective='churn',
        rationale='A cheaper annual plan locks subscribers in for twelve months and '
                  'lowers the churn rate.',
    ),
    ScenarioGoal.BALANCED: Strategy(
        tier='ad_supported',
        price_change_pct=0.05,
        objective='balanced',
        rationale='A small Ad-Supported increase stays under the warning thresholds '
                  'while adding revenue.',
    ),
}


class ChartName(str, Enum):
    FORECAST = 'forecast'
    ELASTICITY = 'elasticity'
    TRADEOFFS = 'tradeoffs'
    COMPARISON = 'comparison'
    TIER_MIX = 'tier_mix'


# (delta key, descending)
SORT_KEYS = {
    'revenue': ('revenue_pct', True),
    'subscribers': ('subscribers_pct', True),
    'churn': ('churn_rate_pct', False),
    'arpu': ('arpu_pct', True),
}

KNOWN_TIERS = tuple(TIER_LABELS)


def _pct(value):
    return value if value is not None else 0.0


def _current_price(session, tier):
    if tier == 'bundle':
        return BUNDLE['default_price']
    try:
        return latest_record(session.weekly_records, tier).get('arpu') or CURRENT_PRICES[tier]
    except PricingModelError:
        if tier in CURRENT_PRICES:
            return CURRENT_PRICES[tier]
        raise


def result_summary(result):
    delta = result['delta']
    return (
        f"{result['scenario_name']}: Revenue {format_signed_pct(delta['revenue_pct'])}, "
        f"Subscribers {format_signed_pct(delta['subscribers_pct'])}, "
        f"Churn {format_signed_pct(delta['churn_rate_pct'])}"
    )


# ============================================================================
# SCENARIO TOOLS
# ============================================================================


def interpret_scenario(session, scenario_id):
    """Plain-language reading of a scenario's simulated outcome"""
    result = session.simulate(scenario_id)
    delta = result['delta']
    revenue_pct = _pct(delta['revenue_pct'])
    subscribers_pct = _pct(delta['subscribers_pct'])

    if revenue_pct > 0 and subscribers_pct >= -5:
        assessment = 'favorable'
        headline = 'Revenue grows while the subscriber base stays largely intact.'
    elif revenue_pct > 0:
        assessment = 'trade_off'
        headline = 'Revenue grows, but at the cost of a significant subscriber loss.'
    elif subscribers_pct > 0:
        assessment = 'growth_investment'
        headline = 'Subscribers grow, funded by lower revenue in the near term.'
    else:
        assessment = 'unfavorable'
        headline = 'Both revenue and subscribers decline.'

    return {
        'scenario_id': result['scenario_id'],
        'scenario_name': result['scenario_name'],
        'assessment': assessment,
        'headline': headline,
        'elasticity': result['elasticity'],
        'key_metrics': {
            'subscribers_change': delta['subscribers'],
            'subscribers_change_pct': delta['subscribers_pct'],
            'revenue_change': delta['revenue'],
            'revenue_change_pct': delta['revenue_pct'],
            'churn_change_pct': delta['churn_rate_pct'],
            'arpu_change': delta['arpu'],
            'net_adds_change': delta['net_adds'],
        },
        'warnings': result['warnings'],
        'constraints_met': result['constraints_met'],
        'summary': result_summary(result),
    }


def suggest_scenario(session, goal):
    """Propose a price move for a business goal and rank the existing scenarios for it"""
    try:
        goal = ScenarioGoal(goal)
    except ValueError:
        options = ', '.join(g.value for g in ScenarioGoal)
        raise ValueError(f"Unknown goal: {goal}. Expected one of: {options}") from None

    strategy = GOAL_STRATEGIES[goal]
    current_price = _current_price(session, strategy.tier)
    new_price = round(current_price * (1 + strategy.price_change_pct), 2)

    results = session.compare([s['id'] for s in session.scenarios])
    ranked = rank_scenarios(results, strategy.objective)

    return {
        'goal': goal.value,
        'strategy': asdict(strategy),
        'suggested_config': {
            'tier': strategy.tier,
            'current_price': current_price,
            'new_price': new_price,
            'price_change_pct': strategy.price_change_pct * 100,
        },
        'rationale': strategy.rationale,
        'ranked_scenarios': [
            {'id': r['scenario_id'], 'name': r['scenario_name'], 'score': r['score']}
            for r in ranked[:3]
        ],
    }


def compare_outcomes(session, scenario_ids, sort_by='revenue'):
    """Side-by-side deltas of several scenarios, best first"""
    if sort_by not in SORT_KEYS:
        raise ValueError(f"Unknown sort_by: {sort_by}")

    known = [sid for sid in scenario_ids if session.has_scenario(sid)]
    if not known:
        raise PricingModelError('No valid scenarios found')

    results = session.compare(known)
    errors = [r for r in results if r.get('error')]
    valid = [r for r in results if not r.get('error')]

    key, descending = SORT_KEYS[sort_by]
    ranked = sorted(valid, key=lambda r: _pct(r['delta'][key]), reverse=descending)

    outcome = {
        'scenarios': [
            {
                'id': r['scenario_id'],
                'name': r['scenario_name'],
                'revenue_change_pct': r['delta']['revenue_pct'],
                'subscribers_change_pct': r['delta']['subscribers_pct'],
                'churn_change_pct': r['delta']['churn_rate_pct'],
                'arpu_change_pct': r['delta']['arpu_pct'],
            }
            for r in ranked
        ],
        'errors': errors,
        'missing': [sid for sid in scenario_ids if sid not in known],
        'sorted_by': sort_by,
        'best_scenario': ranked[0]['scenario_name'] if ranked else None,
    }

    if ranked:
        outcome['summary'] = (
            f"Compared {len(known)} scenarios. Best for {sort_by}: {ranked[0]['scenario_name']} "
            f"({format_signed_pct(ranked[0]['delta'][key])})"
        )
    else:
        outcome['summary'] = f"Compared {len(known)} scenarios; none could be simulated"
    return outcome


def create_scenario(session, params):
    """
    Register a custom scenario from tool arguments

    Args:
        params: {tier, new_price | price_change_pct (percent), current_price?,
                 name?, description?, promotion?, simulate? (default True)}
    """
    tier = params.get('tier')
    if tier not in KNOWN_TIERS:
        raise UnknownTierError(tier, 'scenarios')

    current_price = params.get('current_price') or _current_price(session, tier)
    new_price = params.get('new_price')
    if new_price is None:
        if params.get('price_change_pct') is None:
            raise ValueError('Either new_price or price_change_pct is required')
        new_price = round(current_price * (1 + params['price_change_pct'] / 100), 2)

    fields = {k: params[k] for k in ('name', 'description', 'promotion') if params.get(k)}
    scenario = session.create_custom_scenario(tier, new_price, current_price=current_price, **fields)

    created = {'scenario': scenario}
    if params.get('simulate', True):
        result = session.simulate(scenario)
        created['warnings'] = result['warnings']
        created['summary'] = result_summary(result)
    return created


def run_scenario(session, scenario_id):
    result = session.simulate(scenario_id)
    return {
        'scenario_id': result['scenario_id'],
        'scenario_name': result['scenario_name'],
        'baseline': result['baseline'],
        'forecasted': result['forecasted'],
        'delta': result['delta'],
        'warnings': result['warnings'],
        'summary': result_summary(result),
    }


def get_scenario_list(session):
    return {
        'scenarios': [
            {
                'id': s['id'],
                'name': s.get('name'),
                'description': s.get('description'),
                'category': s.get('category'),
                'priority': s.get('priority'),
                'tier': s['config'].get('tier'),
                'current_price': s['config'].get('current_price'),
                'new_price': s['config'].get('new_price'),
            }
            for s in session.scenarios
        ],
        'total': len(session.scenarios),
        'categories': sorted({s.get('category') for s in session.scenarios if s.get('category')}),
    }


# ============================================================================
# DATA QUERY
# ============================================================================


def _mean(values):
    return sum(values) / len(values) if values else None


def _aggregate(values, aggregation):
    if not values:
        return None, None

    if aggregation == 'avg':
        average = _mean(values)
        return average, {'average': average, 'min': min(values), 'max': max(values),
                         'first': values[0], 'last': values[-1]}
    if aggregation == 'sum':
        total = sum(values)
        return total, {'total': total, 'average': total / len(values)}
    if aggregation == 'min':
        return min(values), None
    if aggregation == 'max':
        return max(values), None
    if aggregation == 'latest':
        previous = values[-2] if len(values) > 1 else None
        return values[-1], {
            'latest': values[-1],
            'previous': previous,
            'change': values[-1] - previous if previous is not None else None,
        }
    if aggregation == 'trend':
        # First quarter of the window against the last quarter
        quarter = max(len(values) // 4, 1)
        first, last = _mean(values[:quarter]), _mean(values[-quarter:])
        trend = {
            'trend': 'increasing' if last > first else 'decreasing',
            'change': last - first,
            'change_pct': (last - first) / first * 100 if first else None,
            'first_period_avg': first,
            'last_period_avg': last,
        }
        return trend, trend

    raise ValueError(f"Unknown aggregation: {aggregation}")


def query_data(session, filters=None, metrics=None, aggregation='avg'):
    """Aggregate weekly tier metrics over an optional tier and date filter"""
    filters = filters or {}
    metrics = metrics or []
    if isinstance(metrics, str):
        metrics = [metrics]
    tier = filters.get('tier') or 'all'

    rows = weekly_data_for_tier(session.weekly_records, tier,
                                filters.get('date_start'), filters.get('date_end'))

    results, detailed = {}, {}
    for metric in metrics:
        values = [r[metric] for r in rows if r.get(metric) is not None]
        if any(isinstance(v, str) for v in values):
            raise ValueError(f"Metric is not numeric: {metric}")
        results[metric], details = _aggregate(values, aggregation)
        if details is not None:
            detailed[metric] = details

    if filters.get('date_start') or filters.get('date_end'):
        date_range = f"{filters.get('date_start') or 'start'} to {filters.get('date_end') or 'end'}"
    else:
        date_range = 'all dates'

    scope = 'all tiers' if tier == 'all' else f"{tier} tier"
    return {
        'query': {'filters': filters, 'metrics': metrics, 'aggregation': aggregation,
                  'tier': tier, 'date_range': date_range},
        'data_points': len(rows),
        'results': results,
        'detailed_results': detailed,
        'sample_data': [
            {'date': r['date'], 'tier': r['tier'], **{m: r.get(m) for m in metrics}}
            for r in rows[:3]
        ],
        'summary': f"Analyzed {len(rows)} weekly data points for {scope} ({date_range})",
    }


# ============================================================================
# CHART ANALYSIS
# ============================================================================


def _require_result(session):
    result = session.latest_result
    if result is None:
        raise PricingModelError('No scenario has been simulated yet')
    return result


def _analyze_forecast(session):
    result = _require_result(session)
    series = result['time_series']
    peak = max(series[1:], key=lambda p: p['revenue'])

    return {
        'scenario_id': result['scenario_id'],
        'data': series,
        'observations': [
            f"Subscribers move from {series[0]['subscribers']:,} to {series[-1]['subscribers']:,} "
            f"over {len(series) - 1} months.",
            'The full price effect is reached by month 3 and holds afterwards.',
            f"Monthly revenue peaks at {format_currency(peak['revenue'], 0)} in month {peak['month']}.",
        ],
    }


def _analyze_elasticity(session):
    params = session.elasticity_params
    data = []
    for tier in params.get('tiers') or {}:
        info = resolve_elasticity(params, tier, time_horizon=session.time_horizon)
        data.append({'tier': tier, **info})

    if not data:
        raise PricingModelError('No tier elasticities loaded')

    most = min(data, key=lambda d: d['elasticity'])
    least = max(data, key=lambda d: d['elasticity'])
    return {
        'data': data,
        'observations': [
            f"{tier_label(most['tier'])} is the most price sensitive tier (elasticity {most['elasticity']:.2f}).",
            f"{tier_label(least['tier'])} is the least price sensitive tier (elasticity {least['elasticity']:.2f}).",
        ],
    }


def _analyze_tradeoffs(session):
    results = session.results
    if not results:
        raise PricingModelError('No scenario has been simulated yet')

    points = [
        {'scenario_id': r['scenario_id'], 'name': r['scenario_name'],
         'revenue_pct': r['delta']['revenue_pct'], 'subscribers_pct': r['delta']['subscribers_pct']}
        for r in results
    ]
    best_revenue = max(points, key=lambda p: _pct(p['revenue_pct']))
    best_growth = max(points, key=lambda p: _pct(p['subscribers_pct']))
    win_win = [p['name'] for p in points if _pct(p['revenue_pct']) > 0 and _pct(p['subscribers_pct']) > 0]

    observations = [
        f"Highest revenue change: {best_revenue['name']} ({format_signed_pct(best_revenue['revenue_pct'])}).",
        f"Highest subscriber change: {best_growth['name']} ({format_signed_pct(best_growth['subscribers_pct'])}).",
    ]
    if win_win:
        observations.append(f"Scenarios growing both revenue and subscribers: {', '.join(win_win)}.")
    else:
        observations.append('No scenario grows revenue and subscribers at the same time.')

    return {'data': points, 'observations': observations}


def _analyze_comparison(session):
    results = session.saved_results or session.results
    if len(results) < 2:
        raise PricingModelError('At least 2 scenarios are needed for a comparison')

    data = [
        {
            'name': r['scenario_name'],
            'dimensions': {
                'revenue': r['delta']['revenue_pct'],
                'growth': r['delta']['subscribers_pct'],
                'arpu': r['delta']['arpu_pct'],
                'churn': r['delta']['churn_rate_pct'],
                'cltv': r['delta']['cltv_pct'],
            },
        }
        for r in results
    ]
    balanced = rank_scenarios(results, 'balanced')[0]
    return {
        'data': data,
        'observations': [
            f"Comparing {len(data)} scenarios across revenue, growth, ARPU, churn and CLTV.",
            f"Best balanced outcome: {balanced['scenario_name']}.",
        ],
    }


def _analyze_tier_mix(session):
    tiers = sorted({r['tier'] for r in session.weekly_records if r.get('tier')})
    current = {t: latest_record(session.weekly_records, t).get('active_subscribers') or 0 for t in tiers}
    total = sum(current.values())

    data = [
        {'tier': t, 'subscribers': subs, 'share': subs / total if total else None}
        for t, subs in current.items()
    ]
    observations = []
    if total:
        largest = max(data, key=lambda d: d['subscribers'])
        observations.append(
            f"{tier_label(largest['tier'])} holds the largest share ({largest['share'] * 100:.1f}%)."
        )

    result = session.latest_result
    if result is not None and session.has_scenario(result['scenario_id']):
        tier = session.get_scenario(result['scenario_id'])['config']['tier']
        if tier in current:
            forecast = dict(current, **{tier: result['forecasted']['subscribers']})
            forecast_total = sum(forecast.values())
            for entry in data:
                entry['forecasted_subscribers'] = forecast[entry['tier']]
                entry['forecasted_share'] = (forecast[entry['tier']] / forecast_total
                                             if forecast_total else None)
            observations.append(f"Forecast mix reflects {result['scenario_name']}.")

    return {'data': data, 'observations': observations}


_CHART_ANALYZERS = {
    ChartName.FORECAST: _analyze_forecast,
    ChartName.ELASTICITY: _analyze_elasticity,
    ChartName.TRADEOFFS: _analyze_tradeoffs,
    ChartName.COMPARISON: _analyze_comparison,
    ChartName.TIER_MIX: _analyze_tier_mix,
}


def analyze_chart(session, chart_name):
    """Data behind a dashboard chart together with short observations"""
    try:
        chart = ChartName(chart_name)
    except ValueError:
        options = ', '.join(c.value for c in ChartName)
        raise ValueError(f"Unknown chart: {chart_name}. Expected one of: {options}") from None

    return {'chart': chart.value, **_CHART_ANALYZERS[chart](session)}


# ============================================================================
# FUNCTION CALLING
# ============================================================================


def _function(name, description, properties, required=()):
    return {
        'type': 'function',
        'function': {
            'name': name,
            'description': description,
            'parameters': {'type': 'object', 'properties': properties, 'required': list(required)},
        },
    }


_SCENARIO_ID = {'type': 'string', 'description': "Scenario id, e.g. 'scenario_001'"}

TOOL_DEFINITIONS = [
    _function(
        'interpret_scenario',
        'Simulate a scenario and explain its outcome in business terms.',
        {'scenario_id': _SCENARIO_ID},
        required=['scenario_id'],
    ),
    _function(
        'suggest_scenario',
        'Suggest a pricing move for a business goal and rank existing scenarios for it.',
        {'goal': {'type': 'string', 'enum': [g.value for g in ScenarioGoal]}},
        required=['goal'],
    ),
    _function(
        'analyze_chart',
        'Return the data behind a dashboard chart with short observations.',
        {'chart_name': {'type': 'string', 'enum': [c.value for c in ChartName]}},
        required=['chart_name'],
    ),
    _function(
        'compare_outcomes',
        'Compare several scenarios side by side and pick the best one.',
        {
            'scenario_ids': {'type': 'array', 'items': {'type': 'string'}},
            'sort_by': {'type': 'string', 'enum': list(SORT_KEYS)},
        },
        required=['scenario_ids'],
    ),
    _function(
        'compare_scenarios',
        'Simulate several scenarios and rank them by a KPI.',
        {
            'scenario_ids': {'type': 'array', 'items': {'type': 'string'}},
            'sort_by': {'type': 'string', 'enum': list(SORT_KEYS)},
        },
        required=['scenario_ids'],
    ),
    _function(
        'create_scenario',
        'Create a custom pricing scenario and simulate it.',
        {
            'tier': {'type': 'string', 'enum': list(KNOWN_TIERS)},
            'new_price': {'type': 'number'},
            'price_change_pct': {'type': 'number', 'description': 'Percent change, e.g. 10 for +10%'},
            'current_price': {'type': 'number'},
            'name': {'type': 'string'},
            'description': {'type': 'string'},
        },
        required=['tier'],
    ),
    _function(
        'query_data',
        'Query weekly aggregated tier data with filters and an aggregation.',
        {
            'filters': {
                'type': 'object',
                'properties': {
                    'tier': {'type': 'string', 'enum': ['ad_supported', 'ad_free', 'annual', 'all']},
                    'date_start': {'type': 'string', 'description': 'YYYY-MM-DD'},
                    'date_end': {'type': 'string', 'description': 'YYYY-MM-DD'},
                },
            },
            'metrics': {'type': 'array', 'items': {'type': 'string'}},
            'aggregation': {'type': 'string', 'enum': ['avg', 'sum', 'min', 'max', 'latest', 'trend']},
        },
        required=['metrics'],
    ),
    _function(
        'run_scenario',
        'Run a scenario simulation and return forecasted KPIs.',
        {'scenario_id': _SCENARIO_ID},
        required=['scenario_id'],
    ),
    _function('get_scenario_list', 'List all available pricing scenarios.', {}),
]

TOOL_HANDLERS = {
    'interpret_scenario': lambda s, a: interpret_scenario(s, a['scenario_id']),
    'suggest_scenario': lambda s, a: suggest_scenario(s, a['goal']),
    'analyze_chart': lambda s, a: analyze_chart(s, a['chart_name']),
    'compare_outcomes': lambda s, a: compare_outcomes(s, a['scenario_ids'], a.get('sort_by', 'revenue')),
    'compare_scenarios': lambda s, a: compare_outcomes(s, a['scenario_ids'], a.get('sort_by', 'revenue')),
    'create_scenario': lambda s, a: create_scenario(s, a),
    'query_data': lambda s, a: query_data(s, a.get('filters'), a.get('metrics'), a.get('aggregation', 'avg')),
    'run_scenario': lambda s, a: run_scenario(s, a['scenario_id']),
    'get_scenario_list': lambda s, a: get_scenario_list(s),
}


def execute_tool(session, name, args=None):
    handler = TOOL_HANDLERS.get(name)
    if handler is None:
        raise UnknownToolError(f"Unknown tool: {name}")
    if args is not None and not isinstance(args, dict):
        raise ValueError(f"Arguments for {name} must be a JSON object")
    return handler(session, args or {})


def execute_tool_call(session, tool_call):
    """
    Run one OpenAI-style tool call and build the tool message

    Failures become {"error": message} so the assistant can report them.
    """
    name = tool_call['function']['name']
    try:
        args = json.loads(tool_call['function'].get('arguments') or '{}')
    except json.JSONDecodeError:
        logger.warning("Unparseable arguments for tool %s", name)
        args = {}

    try:
        content = execute_tool(session, name, args)
    except (PricingModelError, ValueError, KeyError, TypeError) as e:
        logger.error("Tool %s failed: %s", name, e)
        content = {'error': str(e)}

    return {
        'tool_call_id': tool_call.get('id'),
        'role': 'tool',
        'name': name,
        'content': json.dumps(content),
    }
