import logging
import math

import pytest

from price_elasticity.elasticity_model import (
    calculate_wtp,
    forecast_demand,
    get_elasticity_breakdown,
    resolve_elasticity,
    tier_params,
)
from price_elasticity.errors import MissingParameterError, UnknownTierError


class TestForecastDemand:

    def test_price_increase_reduces_subscribers(self):
        demand = forecast_demand(5.99, 6.99, 1_000_000, -2.1)

        expected = 1_000_000 * (6.99 / 5.99) ** -2.1
        assert abs(demand['forecasted_subscribers'] - expected) <= 1
        assert demand['change'] == pytest.approx(expected - 1_000_000, abs=1)
        assert demand['percent_change'] == pytest.approx((expected / 1_000_000 - 1) * 100)
        assert demand['price_ratio'] == pytest.approx(6.99 / 5.99)
        assert demand['price_change_pct'] == pytest.approx(16.694, abs=1e-3)

    def test_price_decrease_grows_subscribers(self):
        demand = forecast_demand(5.99, 4.99, 1_000_000, -2.1)
        assert demand['forecasted_subscribers'] > 1_000_000
        assert demand['change'] > 0

    def test_unchanged_price_keeps_subscribers(self):
        demand = forecast_demand(8.99, 8.99, 500_000, -1.7)
        assert demand['forecasted_subscribers'] == 500_000
        assert demand['change'] == 0
        assert demand['percent_change'] == 0

    def test_constant_elasticity_identity(self):
        # log(Q1/Q0) / log(P1/P0) recovers the elasticity
        demand = forecast_demand(10.0, 12.0, 10_000_000, -1.5)
        ratio = demand['forecasted_subscribers'] / 10_000_000
        assert math.log(ratio) / math.log(1.2) == pytest.approx(-1.5, abs=1e-4)

    @pytest.mark.parametrize('args', [
        (0, 6.99, 1000, -2.1),
        (5.99, 0, 1000, -2.1),
        (5.99, 6.99, 0, -2.1),
        (5.99, 6.99, 1000, 0),
        (None, 6.99, 1000, -2.1),
    ])
    def test_missing_parameters(self, args):
        with pytest.raises(MissingParameterError, match='Missing required parameters'):
            forecast_demand(*args)


class TestResolveElasticity:

    def test_base(self, params):
        info = resolve_elasticity(params, 'ad_supported')
        assert info['elasticity'] == -2.1
        assert info['confidence_interval'] == 0.3
        assert info['lower_bound'] == pytest.approx(-2.4)
        assert info['upper_bound'] == pytest.approx(-1.8)

    def test_segment_overrides_value_and_interval(self, params):
        info = resolve_elasticity(params, 'ad_supported', segment='new_0_3mo')
        assert info['elasticity'] == -2.6
        assert info['confidence_interval'] == 0.4

    def test_unknown_segment_keeps_base(self, params):
        info = resolve_elasticity(params, 'annual', segment='tenured_3_12mo')
        assert info['elasticity'] == -1.5

    def test_cohort_overrides_segment(self, params):
        info = resolve_elasticity(params, 'ad_supported', segment='loyal_12plus',
                                  cohort={'age_group': '18-24'})
        assert info['elasticity'] == -2.5
        # cohorts never change the interval
        assert info['confidence_interval'] == 0.25

    def test_unknown_cohort_value_is_ignored(self, params):
        info = resolve_elasticity(params, 'ad_free', cohort={'device': 'console'})
        assert info['elasticity'] == -1.7

    def test_horizon_multiplier_applied_last(self, params):
        info = resolve_elasticity(params, 'ad_supported', segment='new_0_3mo',
                                  time_horizon='short_term_0_3mo')
        assert info['elasticity'] == pytest.approx(-2.6 * 0.6)

        info = resolve_elasticity(params, 'ad_supported', time_horizon='long_term_12plus')
        assert info['elasticity'] == pytest.approx(-2.73)

    def test_unknown_horizon_is_ignored(self, params):
        info = resolve_elasticity(params, 'ad_free', time_horizon='decade')
        assert info['elasticity'] == -1.7

    def test_bare_number_horizon(self, params):
        params['time_horizon_adjustments']['custom'] = 2.0
        assert resolve_elasticity(params, 'annual', time_horizon='custom')['elasticity'] == -3.0

    def test_fallback_for_missing_tier(self, params, caplog):
        del params['tiers']['annual']

        with caplog.at_level(logging.WARNING):
            info = resolve_elasticity(params, 'annual')

        assert info['elasticity'] == -1.5
        assert info['confidence_interval'] == 0.0
        assert 'using fallback' in caplog.text

    def test_unknown_tier(self, params):
        with pytest.raises(UnknownTierError) as exc_info:
            resolve_elasticity(params, 'premium')

        assert isinstance(exc_info.value, KeyError)
        assert str(exc_info.value) == "Unknown tier 'premium' in tiers"


def test_tier_params_returns_table_entry(params):
    assert tier_params(params, 'ad_free') is params['tiers']['ad_free']


def test_calculate_wtp(params):
    assert calculate_wtp(params, 'ad_free')['median'] == 9.20

    with pytest.raises(UnknownTierError, match='willingness_to_pay'):
        calculate_wtp(params, 'bundle')


def test_elasticity_breakdown(params):
    breakdown = get_elasticity_breakdown(params, 'annual')
    assert breakdown['base'] == -1.5
    assert set(breakdown['segments']) == {'new_0_3mo', 'loyal_12plus'}
    assert 'age_group' in breakdown['cohorts']
    assert breakdown['confidence_interval'] == 0.2
