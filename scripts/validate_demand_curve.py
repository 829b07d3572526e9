#!/usr/bin/env python3
"""
Validate that demand falls monotonically with price and that revenue
peaks below the current price for elastic tiers
"""

from price_elasticity.config import CURRENT_PRICES
from price_elasticity.data_loader import load_elasticity_params
from price_elasticity.elasticity_model import forecast_demand, resolve_elasticity

BASE_SUBSCRIBERS = 1_000_000
PRICE_STEPS = [-0.20, -0.10, -0.05, 0.0, 0.05, 0.10, 0.20]

params = load_elasticity_params()

for tier, current_price in CURRENT_PRICES.items():
    elasticity = resolve_elasticity(params, tier)['elasticity']

    print("\n" + "=" * 70)
    print(f"DEMAND CURVE: {tier} (elasticity {elasticity:.2f})")
    print("=" * 70)
    print(f"\n{'Price':<10} {'Change':<10} {'Subscribers':<14} {'Revenue':<14} {'Status'}")
    print("-" * 70)

    previous = None
    for step in PRICE_STEPS:
        new_price = round(current_price * (1 + step), 2)
        demand = forecast_demand(current_price, new_price, BASE_SUBSCRIBERS, elasticity)
        subscribers = demand['forecasted_subscribers']
        revenue = subscribers * new_price

        if previous is None:
            status = "-"
        elif subscribers <= previous:
            status = "ok"
        else:
            status = "NOT MONOTONIC"
        previous = subscribers

        print(f"${new_price:<9.2f} {step * 100:>+6.1f}%   {subscribers:<14,} ${revenue:<13,.0f} {status}")

print("=" * 70)
print("\nExpected behavior:")
print("   - Subscribers decrease as price increases on every tier")
print("   - With elasticity below -1, revenue falls as price rises")
print("\n")
