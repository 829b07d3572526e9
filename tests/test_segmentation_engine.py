import pytest

from price_elasticity.errors import MissingDataError, MissingParameterError
from price_elasticity.segmentation_engine import (
    AXIS_DEFINITIONS,
    SEGMENT_DESCRIPTIONS,
    aggregate_kpis,
    axis_for_segment,
    filter_segments,
    format_composite_key,
    generate_segment_summary,
    generate_segment_warnings,
    index_segment_kpis,
    parse_composite_key,
    resolve_segment_elasticity,
    segment_baseline,
    segments_for_tier,
    simulate_segment_scenario,
)

PROMO_KEY = 'promo_only_users|ad_value_seekers|deal_responsive_acquirers'


@pytest.fixture
def segment_index(segment_kpis):
    return index_segment_kpis(segment_kpis)


@pytest.fixture
def simulate(scenario_map, params, segment_elasticity, segment_index, weekly_records):
    def _simulate(target_segment, axis=None, scenario_id='scenario_001'):
        return simulate_segment_scenario(scenario_map[scenario_id], params, segment_elasticity,
                                         segment_index, target_segment, axis=axis,
                                         weekly_records=weekly_records)
    return _simulate


class TestVocabulary:

    def test_every_segment_is_described(self):
        for values in AXIS_DEFINITIONS.values():
            assert len(values) == 5
            for value in values:
                assert value in SEGMENT_DESCRIPTIONS

    def test_parse_composite_key(self):
        assert parse_composite_key(PROMO_KEY) == {
            'acquisition': 'promo_only_users',
            'engagement': 'ad_value_seekers',
            'monetization': 'deal_responsive_acquirers',
        }

    def test_format_composite_key(self):
        assert format_composite_key(PROMO_KEY) == \
            'Promo-Only Users | Ad-Value Seekers | Deal-Responsive Acquirers'
        assert format_composite_key('unknown|x|y') == 'unknown | x | y'

    def test_axis_for_segment(self):
        assert axis_for_segment('dormant_subscribers') == 'acquisition'
        assert axis_for_segment('ad_free_loyalists') == 'engagement'
        assert axis_for_segment('value_perception_buyers') == 'monetization'
        assert axis_for_segment('nonexistent') is None


class TestSegmentKpis:

    def test_index_keeps_tiers_apart(self, segment_index):
        # the same composite key exists in both tiers
        key = 'at_risk_lapsers|price_triggered_downgraders|value_perception_buyers'
        assert segment_index[f'ad_supported|{key}']['subscriber_count'] == 1200
        assert segment_index[f'ad_free|{key}']['subscriber_count'] == 700
        assert len(segment_index) == 8

    def test_segments_for_tier(self, segment_index):
        segments = segments_for_tier(segment_index, 'ad_free')

        assert len(segments) == 4
        assert all(s['tier'] == 'ad_free' for s in segments)
        assert all(s['acquisition'] and s['engagement'] and s['monetization'] for s in segments)

    def test_filter_segments(self, segment_index):
        assert len(filter_segments(segment_index)) == 8
        assert len(filter_segments(segment_index, {'acquisition': []})) == 8

        promo = filter_segments(segment_index, {'acquisition': ['promo_only_users']})
        assert {s['tier'] for s in promo} == {'ad_supported', 'ad_free'}

        narrowed = filter_segments(segment_index, {
            'acquisition': ['promo_only_users'],
            'engagement': ['ad_value_seekers'],
        })
        assert [s['compositeKey'] for s in narrowed] == [PROMO_KEY]

    def test_aggregate_kpis(self):
        segments = [
            {'subscriber_count': 100, 'avg_churn_rate': 0.1, 'avg_arpu': 5.0,
             'avg_watch_hours': 10.0, 'avg_cac': 20.0},
            {'subscriber_count': 300, 'avg_churn_rate': 0.2, 'avg_arpu': 9.0,
             'avg_watch_hours': 30.0, 'avg_cac': 40.0},
        ]

        kpis = aggregate_kpis(segments)

        assert kpis['total_subscribers'] == 400
        assert kpis['weighted_churn'] == pytest.approx(0.175)
        assert kpis['weighted_arpu'] == pytest.approx(8.0)
        assert kpis['weighted_watch_hours'] == pytest.approx(25.0)
        assert kpis['weighted_cac'] == pytest.approx(35.0)
        assert kpis['segment_count'] == 2

    def test_aggregate_kpis_empty(self):
        assert aggregate_kpis([])['total_subscribers'] == 0

        zero = aggregate_kpis([{'subscriber_count': 0, 'avg_churn_rate': 0.3}])
        assert zero['weighted_churn'] == 0
        assert zero['segment_count'] == 1

    def test_segment_summary(self):
        summary = generate_segment_summary(PROMO_KEY, {
            'subscriber_count': 1600, 'avg_churn_rate': 0.19, 'avg_arpu': 4.79})
        assert summary == 'Medium-sized budget-conscious segment with very high churn risk - requires retention focus'


class TestSegmentElasticity:

    def test_axis_from_key_position(self, segment_elasticity, params):
        info = resolve_segment_elasticity(segment_elasticity, params, 'ad_supported', 'promo_only_users')

        assert info == {
            'elasticity': -3.42,
            'composite_key': PROMO_KEY,
            'axis': 'acquisition',
            'source': 'segment',
        }

    def test_explicit_axis(self, segment_elasticity, params):
        info = resolve_segment_elasticity(segment_elasticity, params, 'ad_supported',
                                          'promo_only_users', axis='monetization')
        assert info['elasticity'] == -3.05
        assert info['axis'] == 'monetization'

    def test_falls_back_to_tier_base(self, segment_elasticity, params):
        info = resolve_segment_elasticity(segment_elasticity, params, 'ad_free', 'dormant_subscribers')

        assert info['elasticity'] == -1.7
        assert info['source'] == 'tier_base'
        assert info['axis'] == 'acquisition'
        assert info['composite_key'] is None


def test_segment_baseline_restricted_to_axis(segment_index):
    segments = segments_for_tier(segment_index, 'ad_supported')

    baseline = segment_baseline(segments, 'ad_value_seekers', 'engagement')
    assert baseline['subscribers'] == 4000
    assert baseline['segment_count'] == 2

    assert segment_baseline(segments, 'ad_value_seekers', 'acquisition')['subscribers'] == 0


class TestSimulateSegmentScenario:

    def test_targeted_increase(self, simulate):
        result = simulate('promo_only_users')

        price_change = (6.99 - 5.99) / 5.99
        expected_subs = round(1600 * (1 - 3.42 * price_change))

        assert result['axis'] == 'acquisition'
        assert result['composite_key'] == PROMO_KEY
        assert result['elasticity_source'] == 'segment'
        assert result['baseline']['subscribers'] == 1600
        assert result['baseline']['churn_rate'] == pytest.approx(0.19)
        assert result['forecasted']['subscribers'] == expected_subs
        assert result['forecasted']['arpu'] == pytest.approx(4.79 * 6.99 / 5.99)
        assert result['demand_change_pct'] == pytest.approx(-342 * price_change)
        assert result['forecasted']['churn_rate'] == pytest.approx(
            0.19 * (1 - 3.42 * 0.15 * price_change))
        assert result['forecasted']['churn_rate'] == pytest.approx(0.17373, abs=1e-5)

    def test_spillover_and_tier_totals(self, simulate):
        result = simulate('promo_only_users')
        spillover = result['spillover']

        assert spillover['migration_rate'] == 0.10
        assert spillover['total_migration'] == 160
        assert spillover['direction'] == 'outflow'
        assert [s['delta_subscribers'] for s in spillover['segments']] == [-87, -44, -29]
        assert spillover['net_delta'] == -160
        assert spillover['migration_pct'] == pytest.approx(10.0)

        totals = result['tier_totals']
        assert totals['baseline']['subscribers'] == 6000
        assert totals['forecasted']['subscribers'] == \
            6000 + result['delta']['subscribers'] + spillover['net_delta']

    def test_warnings(self, simulate):
        warnings = simulate('promo_only_users')['warnings']

        assert 'Price change of +16.7% exceeds the 15% segment guardrail' in warnings
        assert any(w.startswith('Demand sensitivity of 57.1%') for w in warnings)
        assert not any(w.startswith('Forecasted churn') for w in warnings)
        assert len(warnings) == 2

    def test_engagement_axis_aggregates_matching_records(self, simulate):
        result = simulate('ad_value_seekers')

        assert result['axis'] == 'engagement'
        assert result['elasticity'] == -2.35
        assert result['baseline']['subscribers'] == 4000
        assert len(result['spillover']['segments']) == 2

    def test_price_decrease_is_inflow(self, simulate):
        result = simulate('habitual_streamers', scenario_id='scenario_003')

        assert result['delta']['subscribers'] > 0
        assert result['spillover']['direction'] == 'inflow'
        assert result['forecasted']['churn_rate'] > result['baseline']['churn_rate']

    def test_time_series_ramps_to_segment_forecast(self, simulate):
        result = simulate('promo_only_users')
        series = result['time_series']

        assert len(series) == 13
        assert series[0]['subscribers'] == 1600
        assert series[3]['subscribers'] == result['forecasted']['subscribers']

    def test_all_delegates_to_tier_simulation(self, simulate):
        result = simulate('all')
        assert 'spillover' not in result
        assert result['baseline']['subscribers'] == 1_000_000

    def test_all_passes_time_horizon(self, scenario_map, params, segment_elasticity, segment_index,
                                     weekly_records):
        result = simulate_segment_scenario(scenario_map['scenario_001'], params, segment_elasticity,
                                           segment_index, 'all', weekly_records=weekly_records,
                                           time_horizon='short_term_0_3mo')
        assert result['elasticity'] == pytest.approx(-1.26)

    def test_all_requires_weekly_data(self, scenario_map, params, segment_elasticity, segment_index):
        with pytest.raises(MissingDataError):
            simulate_segment_scenario(scenario_map['scenario_001'], params, segment_elasticity,
                                      segment_index, 'all')

    def test_unknown_segment(self, simulate):
        with pytest.raises(MissingDataError, match='No segment records match'):
            simulate('nonexistent')

    def test_tier_without_segments(self, simulate):
        with pytest.raises(MissingDataError, match='No segment data available for tier: annual'):
            simulate('habitual_streamers', scenario_id='scenario_004')

    def test_missing_price(self, scenario_map, params, segment_elasticity, segment_index):
        scenario = scenario_map['scenario_001']
        scenario['config']['new_price'] = 0

        with pytest.raises(MissingParameterError):
            simulate_segment_scenario(scenario, params, segment_elasticity, segment_index,
                                      'promo_only_users')


def test_segment_warning_thresholds():
    assert generate_segment_warnings(0.14, -0.24, 0.19, 15.0) == []
    assert len(generate_segment_warnings(-0.2, 0.3, 0.25, 16.0)) == 4
