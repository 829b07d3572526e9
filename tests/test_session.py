from pathlib import Path

import pytest

from price_elasticity.errors import ConstraintViolationError, ScenarioNotFoundError
from price_elasticity.session import PricingSession

DATA_DIR = Path(__file__).resolve().parent / 'data'


class TestScenarios:

    def test_scenarios_are_copied(self, session, scenarios):
        session.get_scenario('scenario_001')['config']['new_price'] = 7.49
        assert scenarios[0]['config']['new_price'] == 6.99

    def test_unknown_scenario(self, session):
        with pytest.raises(ScenarioNotFoundError, match='Scenario not found: scenario_999'):
            session.get_scenario('scenario_999')
        assert not session.has_scenario('scenario_999')

    def test_create_custom_scenario(self, session):
        scenario = session.create_custom_scenario('ad_free', 9.49)

        assert scenario['id'] == 'scenario_custom_001'
        assert scenario['category'] == 'custom'
        assert scenario['config']['current_price'] == 8.99
        assert scenario['config']['price_change_pct'] == pytest.approx(0.5 / 8.99 * 100)
        assert scenario['name'] == 'Ad-Free Price Increase to $9.49'
        assert scenario['constraints']['platform_compliant'] is True
        assert session.has_scenario('scenario_custom_001')

        assert session.create_custom_scenario('annual', 5.49)['id'] == 'scenario_custom_002'

    def test_custom_scenario_out_of_range(self, session):
        count = len(session.scenarios)

        with pytest.raises(ConstraintViolationError):
            session.create_custom_scenario('ad_supported', 19.99)

        assert len(session.scenarios) == count

    def test_generated_ids_skip_existing(self, session):
        session.add_scenario({**session.get_scenario('scenario_001'), 'id': 'scenario_custom_001'})
        assert session.generate_scenario_id() == 'scenario_custom_002'


class TestPriceEdits:

    def test_edit_updates_derived_fields(self, session):
        scenario = session.update_scenario_price('scenario_001', 7.49)

        assert scenario['config']['new_price'] == 7.49
        assert scenario['config']['price_change_pct'] == pytest.approx(1.5 / 5.99 * 100)
        assert scenario['name'] == 'Ad-Supported Price Increase to $7.49'
        assert session.get_scenario('scenario_001') is scenario

    def test_rejected_edit_leaves_scenario_unchanged(self, session):
        before = dict(session.get_scenario('scenario_001')['config'])

        with pytest.raises(ConstraintViolationError):
            session.update_scenario_price('scenario_001', 9.99)
        with pytest.raises(ConstraintViolationError):
            session.update_scenario_price('scenario_001', 0)

        assert session.get_scenario('scenario_001')['config'] == before

    def test_edit_invalidates_cached_result(self, session):
        first = session.simulate('scenario_001')
        session.update_scenario_price('scenario_001', 7.49)
        second = session.simulate('scenario_001')

        assert second is not first
        assert second['forecasted']['arpu'] == 7.49
        assert len(session.results) == 1


class TestSimulation:

    def test_results_are_cached(self, session):
        first = session.simulate('scenario_001')
        second = session.simulate(session.get_scenario('scenario_001'))

        assert first is second
        assert session.results == [first]
        assert session.latest_result is first

    def test_cache_bypass(self, session):
        session.simulate('scenario_001')
        session.simulate('scenario_001', use_cache=False)
        assert len(session.results) == 2

    def test_segment_simulation(self, session):
        result = session.simulate_segment('scenario_001', 'promo_only_users')
        assert result['target_segment'] == 'promo_only_users'
        # segment results are not kept in the tier result list
        assert session.results == []

    def test_tier_wide_segment_uses_session_horizon(self, params, weekly_records, scenarios):
        session = PricingSession(params, weekly_records, scenarios=scenarios,
                                 time_horizon='short_term_0_3mo')

        tier_result = session.simulate('scenario_001')
        segment_result = session.simulate_segment('scenario_001', 'all')

        assert tier_result['elasticity'] == pytest.approx(-1.26)
        assert segment_result is tier_result
        assert len(session.results) == 1

    def test_compare(self, session):
        results = session.compare(['scenario_001', 'scenario_missing', 'scenario_002'])

        assert [r['scenario_id'] for r in results] == ['scenario_001', 'scenario_002']
        assert len(session.results) == 2

        again = session.compare(['scenario_002', 'scenario_001'])
        assert again[0] is results[1]
        assert len(session.results) == 2

    def test_compare_failure_is_not_stored(self, session):
        session.add_scenario({
            'id': 'scenario_broken',
            'name': 'Broken',
            'config': {'tier': 'premium', 'current_price': 5.0, 'new_price': 6.0},
            'constraints': {},
        })

        results = session.compare(['scenario_broken', 'scenario_003'])

        assert 'error' in results[0]
        assert results[1]['scenario_id'] == 'scenario_003'
        assert [r['scenario_id'] for r in session.results] == ['scenario_003']


class TestSavedResults:

    def test_save_and_clear(self, session):
        result = session.simulate('scenario_002')
        saved = session.save_result(result)

        assert saved['scenario_id'] == 'scenario_002'
        assert 'saved_at' in saved
        assert 'saved_at' not in result
        assert session.saved_results == [saved]

        session.clear_saved()
        assert session.saved_results == []


def test_kpi_snapshot(session):
    kpis = session.kpi_snapshot()

    assert kpis['total_subscribers'] == 1_700_000
    assert kpis['monthly_revenue'] == pytest.approx((5_990_000 + 4_495_000 + 1_198_000) * 4)
    assert kpis['avg_arpu'] == pytest.approx(kpis['monthly_revenue'] / 1_700_000)
    assert kpis['avg_churn'] == pytest.approx((0.02 + 0.015 + 0.005) / 3)


def test_kpi_snapshot_without_tiers(session):
    kpis = session.kpi_snapshot(tiers=())

    assert kpis['total_subscribers'] == 0
    assert kpis['avg_arpu'] is None
    assert kpis['avg_churn'] is None


def test_from_data_dir():
    session = PricingSession.from_data_dir(DATA_DIR)

    assert session.has_scenario('scenario_001')
    assert len(session.segment_index) == 8

    result = session.simulate('scenario_001')
    assert result['baseline']['subscribers'] == 1_020_000
