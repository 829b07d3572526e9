import copy
from pathlib import Path

import pytest

from price_elasticity import data_loader
from price_elasticity.session import PricingSession

DATA_DIR = Path(__file__).resolve().parent / 'data'


def _week(date, tier, subscribers, churn_rate, new_subscribers, arpu):
    return {
        'date': date,
        'tier': tier,
        'active_subscribers': subscribers,
        'churn_rate': churn_rate,
        'new_subscribers': new_subscribers,
        'revenue': subscribers * arpu,
        'arpu': arpu,
    }


WEEKLY_RECORDS = [
    # latest rows listed first to check that lookups sort by date
    _week('2024-12-29', 'ad_supported', 1_000_000, 0.02, 20_000, 5.99),
    _week('2024-12-22', 'ad_supported', 990_000, 0.021, 19_000, 5.99),
    _week('2024-12-29', 'ad_free', 500_000, 0.015, 10_000, 8.99),
    _week('2024-12-22', 'ad_free', 495_000, 0.016, 9_500, 8.99),
    _week('2024-12-29', 'annual', 200_000, 0.005, 4_000, 5.99),
    _week('2024-12-22', 'annual', 198_000, 0.005, 3_900, 5.99),
]


def _scenario(scenario_id, tier, current_price, new_price, constraints, name=None, category='price_increase'):
    return {
        'id': scenario_id,
        'name': name or f"{tier} to {new_price}",
        'description': '',
        'category': category,
        'config': {
            'tier': tier,
            'current_price': current_price,
            'new_price': new_price,
            'price_change_pct': (new_price - current_price) / current_price * 100,
        },
        'constraints': constraints,
    }


SCENARIOS = [
    _scenario('scenario_001', 'ad_supported', 5.99, 6.99,
              {'min_price': 4.99, 'max_price': 7.99, 'platform_compliant': True,
               'price_change_12mo_limit': True, 'notice_period_30d': True},
              name='Ad-Supported Price Increase to $6.99'),
    _scenario('scenario_002', 'ad_free', 8.99, 9.99,
              {'min_price': 7.99, 'max_price': 11.99, 'platform_compliant': True}),
    _scenario('scenario_003', 'ad_supported', 5.99, 4.99,
              {'min_price': 3.99, 'max_price': 7.99, 'platform_compliant': True},
              category='price_decrease'),
    _scenario('scenario_004', 'annual', 5.99, 6.99,
              {'min_price': 4.99, 'max_price': 7.99, 'platform_compliant': True,
               'price_change_12mo_limit': False}),
    _scenario('scenario_008', 'bundle', 15.99, 14.99,
              {'min_price': 12.99, 'max_price': 17.99, 'platform_compliant': True},
              category='bundle'),
]


@pytest.fixture
def params():
    return data_loader.load_elasticity_params(DATA_DIR)


@pytest.fixture
def weekly_records():
    return copy.deepcopy(WEEKLY_RECORDS)


@pytest.fixture
def scenarios():
    return copy.deepcopy(SCENARIOS)


@pytest.fixture
def scenario_map(scenarios):
    return {s['id']: s for s in scenarios}


@pytest.fixture
def segment_elasticity():
    return data_loader.load_segment_elasticity(DATA_DIR)


@pytest.fixture
def segment_kpis():
    return data_loader.load_segment_kpis(DATA_DIR)


@pytest.fixture
def session(params, weekly_records, scenarios, segment_elasticity, segment_kpis):
    return PricingSession(
        params,
        weekly_records,
        scenarios=scenarios,
        segment_elasticity=segment_elasticity,
        segment_kpis=segment_kpis,
    )

