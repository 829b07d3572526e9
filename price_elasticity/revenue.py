"""
Revenue, ARPU and CLTV arithmetic

ARPU at the tier level is the tier price; CLTV assumes a fixed lifetime.
"""

from .config import AVG_LIFETIME_MONTHS
from .utils import safe_divide


def percent_change(baseline, forecast):
    """(forecast - baseline) / baseline * 100, or None when baseline is 0"""
    ratio = safe_divide(forecast - baseline, baseline)
    return None if ratio is None else ratio * 100


def calculate_revenue_impact(forecasted_subs, new_price, baseline_subs, current_price):
    # Monthly revenue = subscribers x price
    forecasted_revenue = forecasted_subs * new_price
    baseline_revenue = baseline_subs * current_price

    return {
        'baseline_revenue': baseline_revenue,
        'forecasted_revenue': forecasted_revenue,
        'change': forecasted_revenue - baseline_revenue,
        'percent_change': percent_change(baseline_revenue, forecasted_revenue),
    }


def calculate_arpu_cltv(baseline_arpu, new_price, lifetime_months=AVG_LIFETIME_MONTHS):
    forecasted_arpu = new_price
    baseline_cltv = baseline_arpu * lifetime_months
    forecasted_cltv = forecasted_arpu * lifetime_months

    return {
        'baseline_arpu': baseline_arpu,
        'forecasted_arpu': forecasted_arpu,
        'arpu_change': forecasted_arpu - baseline_arpu,
        'arpu_pct': percent_change(baseline_arpu, forecasted_arpu),
        'baseline_cltv': baseline_cltv,
        'forecasted_cltv': forecasted_cltv,
        'cltv_change': forecasted_cltv - baseline_cltv,
        'cltv_pct': percent_change(baseline_cltv, forecasted_cltv),
    }
