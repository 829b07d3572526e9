"""
Model Constants
Fixed business assumptions shared by the forecasting modules
"""

import os
from pathlib import Path

DATA_DIR = Path(
    os.environ.get('PRICE_ELASTICITY_DATA_DIR', Path(__file__).parent.parent / 'data')
)

# Published per-tier elasticities, used when a lookup table has no entry
FALLBACK_ELASTICITY = {
    'ad_supported': -2.1,
    'ad_free': -1.7,
    'annual': -1.5,
}

# Current list prices, used by tier migration when none are supplied
CURRENT_PRICES = {
    'ad_supported': 5.99,
    'ad_free': 8.99,
    'annual': 5.99,
}

DEFAULT_TIME_HORIZON = 'medium_term_3_12mo'

AVG_LIFETIME_MONTHS = 24   # CLTV = ARPU x lifetime
FORECAST_MONTHS = 12
RAMP_MONTHS = 3            # full price effect reached by month 3

# Bundle = Discovery+ Ad-Free + Max, no bundle history of its own
BUNDLE = {
    'base_tier': 'ad_free',
    'potential_pct': 0.30,   # share of ad_free subscribers open to the bundle
    'churn_factor': 0.7,     # bundles churn less than standalone plans
    'default_price': 14.99,
}

WARNING_THRESHOLDS = {
    # Tier-level scenarios
    'churn_change_pct': 10.0,
    'subscriber_change_pct': -5.0,
    'price_increase_pct': 20.0,
    # Segment-targeted scenarios
    'segment_price_change_pct': 15.0,
    'segment_demand_change_pct': 25.0,
    'segment_churn_rate': 0.20,
    'segment_migration_pct': 15.0,
}

SEGMENT_MODEL = {
    'churn_pass_through': 0.15,  # share of the elasticity effect reaching churn
    'migration_factor': 0.25,    # migrants per unit of demand change
    'migration_cap': 0.10,       # at most 10% of the target segment moves
}

AXES = ('acquisition', 'engagement', 'monetization')

CHURN_BOUNDS = (0.0, 1.0)
