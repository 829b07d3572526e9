"""
Pricing session: reference tables plus the in-memory scenario and result lists
"""

import copy
import logging
from datetime import datetime, timezone
from itertools import count

from . import data_loader
from .config import DEFAULT_TIME_HORIZON
from .errors import ScenarioNotFoundError
from .scenario_engine import compare_scenarios, simulate_scenario
from .scenarios import apply_price_edit, build_scenario, validate_price
from .segmentation_engine import index_segment_kpis, simulate_segment_scenario
from .utils import safe_divide

logger = logging.getLogger(__name__)

TIERS = ('ad_supported', 'ad_free', 'annual')


class PricingSession:
    """
    Single-user session state

    Reference tables (elasticity params, weekly data, segment tables) are
    read-only. Scenarios, simulation results and saved results are lists
    that only grow until explicitly cleared.
    """

    def __init__(self, elasticity_params, weekly_records, scenarios=None,
                 segment_elasticity=None, segment_kpis=None, time_horizon=DEFAULT_TIME_HORIZON):
        self.elasticity_params = elasticity_params
        self.weekly_records = weekly_records
        self.segment_elasticity = segment_elasticity or {}
        self.segment_index = index_segment_kpis(segment_kpis or [])
        self.time_horizon = time_horizon

        self.scenarios = [copy.deepcopy(s) for s in (scenarios or [])]
        self._results = []
        self._saved = []
        self._custom_ids = count(1)

    @classmethod
    def from_data_dir(cls, data_dir=None, **kwargs):
        return cls(
            elasticity_params=data_loader.load_elasticity_params(data_dir),
            weekly_records=data_loader.load_weekly_aggregated(data_dir),
            scenarios=data_loader.load_scenarios(data_dir),
            segment_elasticity=data_loader.load_segment_elasticity(data_dir),
            segment_kpis=data_loader.load_segment_kpis(data_dir),
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Scenarios
    # ------------------------------------------------------------------

    def get_scenario(self, scenario_id):
        for scenario in self.scenarios:
            if scenario['id'] == scenario_id:
                return scenario
        raise ScenarioNotFoundError(scenario_id)

    def has_scenario(self, scenario_id):
        return any(s['id'] == scenario_id for s in self.scenarios)

    def add_scenario(self, scenario):
        self.scenarios.append(scenario)
        return scenario

    def generate_scenario_id(self):
        while True:
            scenario_id = f"scenario_custom_{next(self._custom_ids):03d}"
            if not self.has_scenario(scenario_id):
                return scenario_id

    def create_custom_scenario(self, tier, new_price, current_price=None, **fields):
        """
        Build and register a custom scenario

        current_price defaults to the latest weekly price of the tier (its ARPU).
        """
        if current_price is None:
            current_price = data_loader.latest_record(self.weekly_records, tier).get('arpu')

        constraints = fields.pop('constraints', None)
        if constraints is None:
            constraints = {'min_price': round(current_price * 0.5, 2),
                           'max_price': round(current_price * 2.0, 2),
                           'platform_compliant': True}

        scenario = build_scenario(self.generate_scenario_id(), tier, current_price, new_price,
                                  category=fields.pop('category', 'custom'),
                                  constraints=constraints, **fields)
        validate_price(scenario, new_price)
        logger.info("Created scenario %s", scenario['id'])
        return self.add_scenario(scenario)

    def update_scenario_price(self, scenario_id, new_price):
        """Edit a scenario's price; cached results for it are dropped"""
        scenario = apply_price_edit(self.get_scenario(scenario_id), new_price)
        self._results = [r for r in self._results if r['scenario_id'] != scenario_id]
        return scenario

    # ------------------------------------------------------------------
    # Simulation results
    # ------------------------------------------------------------------

    def cached_result(self, scenario_id):
        for result in reversed(self._results):
            if result['scenario_id'] == scenario_id:
                return result
        return None

    @property
    def results(self):
        return list(self._results)

    @property
    def latest_result(self):
        return self._results[-1] if self._results else None

    def simulate(self, scenario, use_cache=True):
        """
        Simulate a scenario (id or record), reusing a cached result when present

        The cache is only consulted before the computation starts.
        """
        if isinstance(scenario, str):
            scenario = self.get_scenario(scenario)

        if use_cache:
            cached = self.cached_result(scenario['id'])
            if cached is not None:
                return cached

        result = simulate_scenario(scenario, self.elasticity_params, self.weekly_records,
                                   self.time_horizon)
        self._results.append(result)
        return result

    def simulate_segment(self, scenario, target_segment, axis=None):
        """Segment-targeted simulation; 'all' is the cached tier-wide path"""
        if target_segment in (None, 'all'):
            return self.simulate(scenario)

        if isinstance(scenario, str):
            scenario = self.get_scenario(scenario)

        return simulate_segment_scenario(
            scenario, self.elasticity_params, self.segment_elasticity, self.segment_index,
            target_segment, axis=axis, weekly_records=self.weekly_records,
            time_horizon=self.time_horizon,
        )

    def compare(self, scenario_ids):
        """
        Results for several scenarios, in the order given

        Unknown ids are skipped; cached results are reused and a scenario
        that fails yields a {scenario_id, error} placeholder.
        """
        scenarios = [self.get_scenario(sid) for sid in scenario_ids if self.has_scenario(sid)]
        pending = [s for s in scenarios if self.cached_result(s['id']) is None]

        fresh = compare_scenarios(pending, self.elasticity_params, self.weekly_records,
                                  self.time_horizon)
        self._results.extend(r for r in fresh if not r.get('error'))
        failed = {r['scenario_id']: r for r in fresh if r.get('error')}

        return [failed.get(s['id']) or self.cached_result(s['id']) for s in scenarios]

    # ------------------------------------------------------------------
    # Saved results
    # ------------------------------------------------------------------

    def save_result(self, result):
        saved = {**result, 'saved_at': datetime.now(timezone.utc).isoformat()}
        self._saved.append(saved)
        return saved

    @property
    def saved_results(self):
        return list(self._saved)

    def clear_saved(self):
        self._saved = []

    # ------------------------------------------------------------------
    # KPIs
    # ------------------------------------------------------------------

    def kpi_snapshot(self, tiers=TIERS):
        """Latest-week totals across tiers; weekly revenue scaled x4 to monthly"""
        latest = [data_loader.latest_record(self.weekly_records, tier) for tier in tiers]

        total_subs = sum(r.get('active_subscribers') or 0 for r in latest)
        total_revenue = sum(r.get('revenue') or 0 for r in latest) * 4

        return {
            'total_subscribers': total_subs,
            'monthly_revenue': total_revenue,
            'avg_arpu': total_revenue / total_subs if total_subs else None,
            'avg_churn': safe_divide(sum(r.get('churn_rate') or 0 for r in latest), len(latest)),
        }
