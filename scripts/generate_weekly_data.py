#!/usr/bin/env python3
"""Generate the tier-level fixtures: weekly_aggregated.csv, elasticity-params.json
and scenarios.json.
"""

import csv
import json
import random
from datetime import date, timedelta

random.seed(42)
DATA_DIR = "data"

TIERS = ["ad_supported", "ad_free", "annual"]

TIER_PRICE = {
    "ad_supported": 5.99,
    "ad_free": 8.99,
    "annual": 5.99,
}

STARTING_SUBSCRIBERS = {
    "ad_supported": 880000,
    "ad_free": 540000,
    "annual": 262000,
}

WEEKLY_CHURN = {
    "ad_supported": 0.0175,
    "ad_free": 0.0125,
    "annual": 0.0055,
}

WEEKLY_ADDS_PCT = {
    "ad_supported": 0.0195,
    "ad_free": 0.0150,
    "annual": 0.0135,
}

START_DATE = date(2022, 1, 2)
WEEKS = 156

# Week-of-year with a holiday promotion running
PROMO_WEEKS = {22, 47, 51}


def write_csv(path, rows):
    if not rows:
        return
    with open(path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=list(rows[0].keys()))
        writer.writeheader()
        writer.writerows(rows)


def write_json(path, payload):
    with open(path, "w") as f:
        json.dump(payload, f, indent=2)


def price_scenario(scenario_id, tier, new_price, priority, constraints, **extra):
    current_price = TIER_PRICE[tier]
    change = (new_price - current_price) / current_price * 100
    verb = "Increase" if change > 0 else "Decrease"
    label = tier.replace("_", "-").title()
    return {
        "id": scenario_id,
        "name": f"{label} Price {verb} to ${new_price:.2f}",
        "description": f"{verb} {label} tier price from ${current_price:.2f} to ${new_price:.2f} ({change:+.1f}%)",
        "category": "price_increase" if change > 0 else "price_decrease",
        "priority": priority,
        "config": {"tier": tier, "current_price": current_price, "new_price": new_price,
                   "price_change_pct": round(change, 2), **extra},
        "constraints": constraints,
    }


# ---------------------------------------------------------------------------
# weekly_aggregated.csv
# ---------------------------------------------------------------------------
weekly_rows = []
for tier in TIERS:
    subscribers = STARTING_SUBSCRIBERS[tier]
    price = TIER_PRICE[tier]

    for week in range(WEEKS):
        week_date = START_DATE + timedelta(weeks=week)
        is_promo = week_date.isocalendar()[1] in PROMO_WEEKS

        churn_rate = WEEKLY_CHURN[tier] * random.uniform(0.92, 1.08)
        adds_pct = WEEKLY_ADDS_PCT[tier] * random.uniform(0.9, 1.1) * (1.25 if is_promo else 1.0)

        new_subscribers = int(subscribers * adds_pct)
        churned = int(subscribers * churn_rate)
        net_adds = new_subscribers - churned

        weekly_rows.append({
            "date": week_date.isoformat(),
            "tier": tier,
            "active_subscribers": subscribers,
            "churn_rate": round(churn_rate, 4),
            "new_subscribers": new_subscribers,
            "churned_subscribers": churned,
            "net_adds": net_adds,
            "revenue": round(subscribers * price, 2),
            "arpu": price,
            "price": price,
            "is_promo": is_promo,
        })
        subscribers += net_adds

write_csv(f"{DATA_DIR}/weekly_aggregated.csv", weekly_rows)

# ---------------------------------------------------------------------------
# elasticity-params.json
# ---------------------------------------------------------------------------
elasticity_params = {
    "tiers": {
        "ad_supported": {
            "base_elasticity": -2.1,
            "confidence_interval": 0.3,
            "segments": {
                "new_0_3mo": {"elasticity": -2.6, "confidence_interval": 0.4},
                "tenured_3_12mo": {"elasticity": -2.0, "confidence_interval": 0.3},
                "loyal_12plus": {"elasticity": -1.5, "confidence_interval": 0.25},
            },
            "cohort_elasticity": {
                "age_group": {"18-24": -2.5, "25-34": -2.2, "35-44": -1.9, "45+": -1.6},
                "device": {"mobile": -2.3, "smart_tv": -1.8, "web": -2.0},
            },
        },
        "ad_free": {
            "base_elasticity": -1.7,
            "confidence_interval": 0.25,
            "segments": {
                "new_0_3mo": {"elasticity": -2.1, "confidence_interval": 0.35},
                "tenured_3_12mo": {"elasticity": -1.6, "confidence_interval": 0.25},
                "loyal_12plus": {"elasticity": -1.2, "confidence_interval": 0.2},
            },
            "cohort_elasticity": {
                "age_group": {"18-24": -2.0, "25-34": -1.8, "35-44": -1.6, "45+": -1.3},
                "device": {"mobile": -1.9, "smart_tv": -1.5, "web": -1.7},
            },
        },
        "annual": {
            "base_elasticity": -1.5,
            "confidence_interval": 0.2,
            "segments": {
                "new_0_3mo": {"elasticity": -1.8, "confidence_interval": 0.3},
                "loyal_12plus": {"elasticity": -1.1, "confidence_interval": 0.2},
            },
            "cohort_elasticity": {
                "age_group": {"18-24": -1.8, "25-34": -1.6, "35-44": -1.4, "45+": -1.2},
            },
        },
    },
    "time_horizon_adjustments": {
        "short_term_0_3mo": {"multiplier": 0.6, "description": "Immediate response, habits not yet adjusted"},
        "medium_term_3_12mo": {"multiplier": 1.0, "description": "Steady-state response"},
        "long_term_12plus": {"multiplier": 1.3, "description": "Full substitution to alternatives"},
    },
    "churn_elasticity": {
        "ad_supported": {"churn_elasticity": 1.2},
        "ad_free": {"churn_elasticity": 0.9},
        "annual": {"churn_elasticity": 0.5},
    },
    "acquisition_elasticity": {
        "ad_supported": {"acquisition_elasticity": -2.4},
        "ad_free": {"acquisition_elasticity": -1.9},
        "annual": {"acquisition_elasticity": -1.6},
    },
    "cross_elasticity": {
        "ad_free_to_ad_supported": 0.45,
        "ad_free_to_annual": 0.20,
        "ad_supported_to_ad_free": 0.10,
        "ad_supported_to_annual": 0.15,
        "annual_to_ad_supported": 0.25,
        "annual_to_ad_free": 0.05,
    },
    "willingness_to_pay": {
        "ad_supported": {"mean": 6.40, "median": 6.10, "std": 1.6,
                         "percentiles": {"p25": 4.99, "p50": 6.10, "p75": 7.49, "p90": 8.99}},
        "ad_free": {"mean": 9.60, "median": 9.20, "std": 2.1,
                    "percentiles": {"p25": 7.99, "p50": 9.20, "p75": 10.99, "p90": 12.99}},
        "annual": {"mean": 6.20, "median": 5.99, "std": 1.2,
                   "percentiles": {"p25": 5.25, "p50": 5.99, "p75": 6.99, "p90": 7.99}},
    },
}

write_json(f"{DATA_DIR}/elasticity-params.json", elasticity_params)

# ---------------------------------------------------------------------------
# scenarios.json
# ---------------------------------------------------------------------------
scenarios = [
    price_scenario("scenario_001", "ad_supported", 6.99, "high",
                   {"min_price": 4.99, "max_price": 7.99, "platform_compliant": True,
                    "price_change_12mo_limit": True, "notice_period_30d": True}),
    price_scenario("scenario_002", "ad_free", 9.99, "high",
                   {"min_price": 7.99, "max_price": 11.99, "platform_compliant": True,
                    "notice_period_30d": True}),
    price_scenario("scenario_003", "ad_supported", 4.99, "medium",
                   {"min_price": 3.99, "max_price": 7.99, "platform_compliant": True}),
    price_scenario("scenario_004", "annual", 6.99, "medium",
                   {"min_price": 4.99, "max_price": 7.99, "platform_compliant": True,
                    "price_change_12mo_limit": False}),
    price_scenario("scenario_005", "ad_free", 6.99, "medium",
                   {"min_price": 5.99, "max_price": 11.99, "platform_compliant": True},
                   promotion={"discount_pct": 22.25, "duration_months": 3}),
]

scenarios[-1]["category"] = "promotion"
scenarios.append({
    "id": "scenario_008",
    "name": "Discovery+ & Max Bundle at $14.99",
    "description": "Launch a Discovery+ Ad-Free and Max bundle at $14.99 (vs $15.99 list)",
    "category": "bundle",
    "priority": "high",
    "config": {"tier": "bundle", "current_price": 15.99, "new_price": 14.99, "price_change_pct": -6.25},
    "constraints": {"min_price": 12.99, "max_price": 17.99, "platform_compliant": True},
})

write_json(f"{DATA_DIR}/scenarios.json", scenarios)

print(f"Generated {len(weekly_rows)} weekly rows and {len(scenarios)} scenarios.")
