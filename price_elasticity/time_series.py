"""
Monthly trajectory of a price change

The effect ramps in linearly and is fully applied by RAMP_MONTHS, then holds.
"""

from .config import FORECAST_MONTHS, RAMP_MONTHS
from .utils import round_half_up


def project_time_series(demand, churn, acquisition, new_price, months=FORECAST_MONTHS):
    """
    Project subscribers, revenue and churn for months 0..months

    Args:
        demand: forecast_demand() output
        churn: forecast_churn() output
        acquisition: forecast_acquisition() output (not used by the ramp)
        new_price: price in effect over the horizon
        months: number of forecast months

    Returns:
        list of {month, subscribers, revenue, churn_rate}, length months + 1
    """
    base = demand['base_subscribers']
    total_change = demand['forecasted_subscribers'] - base
    churn_change = churn['forecasted_churn'] - churn['baseline_churn']

    # Month 0 revenue is priced at the pre-change price implied by the ratio
    series = [{
        'month': 0,
        'subscribers': base,
        'revenue': base * (new_price / (1 + demand['price_change_pct'] / 100)),
        'churn_rate': churn['baseline_churn'],
    }]

    for month in range(1, months + 1):
        progress = min(month / RAMP_MONTHS, 1)
        subscribers = base + total_change * progress

        series.append({
            'month': month,
            'subscribers': round_half_up(subscribers),
            'revenue': round_half_up(subscribers * new_price),
            'churn_rate': churn['baseline_churn'] + churn_change * progress,
        })

    return series
