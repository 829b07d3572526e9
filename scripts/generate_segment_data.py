#!/usr/bin/env python3
"""
Segment Data Generator
Builds segment_elasticity.json and segment_kpis.csv from behavioral archetypes

Every composite key (acquisition|engagement|monetization) is a weighted mix of
archetypes; its per-axis elasticity mixes the archetype elasticities with the
weights contributed by that axis alone.
"""

import csv
import json
import random
from itertools import product
from pathlib import Path

# Set random seed for reproducibility
random.seed(42)

TIERS = ["ad_supported", "ad_free"]

# ad_free subscribers are less price sensitive than ad_supported ones
TIER_ELASTICITY_FACTOR = {"ad_supported": 1.0, "ad_free": 0.75}
TIER_ARPU = {"ad_supported": 5.99, "ad_free": 8.99}

# ============================================================================
# PART 1: BEHAVIORAL ARCHETYPES
# ============================================================================

ARCHETYPES = {
    "ultra_loyal":     {"elasticity": -0.65, "churn": 0.05, "watch_hours": 48.0, "cac": 15.0, "size": 2600},
    "value_conscious": {"elasticity": -1.80, "churn": 0.11, "watch_hours": 22.0, "cac": 21.0, "size": 2000},
    "deal_hunter":     {"elasticity": -3.20, "churn": 0.21, "watch_hours": 10.0, "cac": 28.0, "size": 1400},
    "content_driven":  {"elasticity": -1.10, "churn": 0.09, "watch_hours": 38.0, "cac": 17.0, "size": 1800},
    "tier_flexible":   {"elasticity": -2.10, "churn": 0.12, "watch_hours": 20.0, "cac": 23.0, "size": 1200},
    "premium_seeker":  {"elasticity": -0.85, "churn": 0.06, "watch_hours": 41.0, "cac": 19.0, "size": 1500},
    "at_risk":         {"elasticity": -2.60, "churn": 0.18, "watch_hours": 7.0,  "cac": 25.0, "size": 900},
}

# ============================================================================
# PART 2: SEGMENT-TO-ARCHETYPE MAPPING (per axis)
# ============================================================================

AXIS_WEIGHTS = {
    "acquisition": {
        "habitual_streamers":       {"ultra_loyal": 0.6, "content_driven": 0.2, "value_conscious": 0.2},
        "content_anchored_viewers": {"content_driven": 0.6, "ultra_loyal": 0.25, "value_conscious": 0.15},
        "at_risk_lapsers":          {"at_risk": 0.7, "value_conscious": 0.2, "tier_flexible": 0.1},
        "promo_only_users":         {"deal_hunter": 0.7, "value_conscious": 0.3},
        "dormant_subscribers":      {"at_risk": 0.6, "deal_hunter": 0.25, "value_conscious": 0.15},
    },
    "engagement": {
        "ad_value_seekers":            {"value_conscious": 0.5, "deal_hunter": 0.3, "tier_flexible": 0.2},
        "ad_tolerant_upgraders":       {"tier_flexible": 0.4, "value_conscious": 0.3, "premium_seeker": 0.3},
        "ad_free_loyalists":           {"premium_seeker": 0.6, "ultra_loyal": 0.4},
        "price_triggered_downgraders": {"tier_flexible": 0.5, "deal_hunter": 0.3, "at_risk": 0.2},
        "tvod_inclined_buyers":        {"content_driven": 0.5, "premium_seeker": 0.3, "value_conscious": 0.2},
    },
    "monetization": {
        "platform_bundled_acquirers": {"ultra_loyal": 0.4, "value_conscious": 0.4, "premium_seeker": 0.2},
        "tvod_to_svod_converters":    {"content_driven": 0.5, "ultra_loyal": 0.3, "premium_seeker": 0.2},
        "content_triggered_buyers":   {"content_driven": 0.6, "value_conscious": 0.25, "ultra_loyal": 0.15},
        "deal_responsive_acquirers":  {"deal_hunter": 0.6, "value_conscious": 0.3, "tier_flexible": 0.1},
        "value_perception_buyers":    {"value_conscious": 0.6, "tier_flexible": 0.25, "deal_hunter": 0.15},
    },
}

AXES = ["acquisition", "engagement", "monetization"]


def mix(weights, attribute):
    """Weighted archetype attribute; weights need not be normalized"""
    total = sum(weights.values())
    return sum(ARCHETYPES[name][attribute] * w for name, w in weights.items()) / total


def profile_weights(composite):
    """Combined archetype weights of a (acquisition, engagement, monetization) tuple"""
    combined = {}
    for axis, segment in zip(AXES, composite):
        for name, weight in AXIS_WEIGHTS[axis][segment].items():
            combined[name] = combined.get(name, 0.0) + weight
    return combined

# ============================================================================
# PART 3: GENERATE TABLES
# ============================================================================


def generate_segment_elasticity():
    output = {}

    for tier in TIERS:
        factor = TIER_ELASTICITY_FACTOR[tier]
        table = {}

        for composite in product(*(AXIS_WEIGHTS[axis] for axis in AXES)):
            entry = {}
            for axis, segment in zip(AXES, composite):
                noise = random.uniform(-0.05, 0.05)
                elasticity = mix(AXIS_WEIGHTS[axis][segment], "elasticity") * factor * (1 + noise)
                entry[f"{axis}_axis"] = {"elasticity": round(elasticity, 3)}

            entry["profile_weights"] = profile_weights(composite)
            table["|".join(composite)] = entry

        output[tier] = {"segment_elasticity": table}

    return output


def generate_segment_kpis():
    rows = []

    for tier in TIERS:
        for composite in product(*(AXIS_WEIGHTS[axis] for axis in AXES)):
            weights = profile_weights(composite)
            discount = 0.8 if composite[2] == "deal_responsive_acquirers" else 1.0

            rows.append({
                "tier": tier,
                "composite_key": "|".join(composite),
                "subscriber_count": int(mix(weights, "size") * random.uniform(0.6, 1.4)),
                "avg_churn_rate": round(mix(weights, "churn") * random.uniform(0.9, 1.1), 4),
                "avg_arpu": round(TIER_ARPU[tier] * discount, 2),
                "avg_watch_hours": round(mix(weights, "watch_hours"), 1),
                "avg_cac": round(mix(weights, "cac"), 2),
            })

    return rows

# ============================================================================
# PART 4: VALIDATION & STATISTICS
# ============================================================================


def validate_generated_data(segment_elasticity):
    print("\n" + "=" * 70)
    print("DATA VALIDATION & STATISTICS")
    print("=" * 70)

    for axis in AXES:
        values = [
            entry[f"{axis}_axis"]["elasticity"]
            for tier in TIERS
            for entry in segment_elasticity[tier]["segment_elasticity"].values()
        ]
        mean = sum(values) / len(values)
        print(f"\n{axis.title()} axis elasticity:")
        print(f"   Min:    {min(values):.2f}")
        print(f"   Max:    {max(values):.2f}")
        print(f"   Mean:   {mean:.2f}")
        print(f"   Spread: {max(values) - min(values):.2f}")

        positive = [v for v in values if v > 0]
        print(f"   All negative: {'yes' if not positive else 'NO (' + str(len(positive)) + ')'}")

    total = sum(len(segment_elasticity[t]["segment_elasticity"]) for t in TIERS)
    print(f"\n   Total segments: {total} (expected 250 = 125 x 2 tiers)")
    print("=" * 70)

# ============================================================================
# MAIN EXECUTION
# ============================================================================


def main():
    print("\nGENERATING SEGMENT DATA")
    print("=" * 70)

    data_dir = Path(__file__).parent.parent / "data"
    data_dir.mkdir(exist_ok=True)

    print("\nTask 1/3: Generating segment_elasticity.json...")
    segment_elasticity = generate_segment_elasticity()
    output_path = data_dir / "segment_elasticity.json"
    with open(output_path, "w") as f:
        json.dump(segment_elasticity, f, indent=2)
    print(f"   Saved to: {output_path}")

    print("\nTask 2/3: Generating segment_kpis.csv...")
    rows = generate_segment_kpis()
    output_path = data_dir / "segment_kpis.csv"
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=list(rows[0].keys()))
        writer.writeheader()
        writer.writerows(rows)
    print(f"   Saved to: {output_path} ({len(rows)} rows)")

    print("\nTask 3/3: Validating generated data...")
    validate_generated_data(segment_elasticity)

    print("\nSEGMENT DATA GENERATION COMPLETE\n")


if __name__ == "__main__":
    main()
