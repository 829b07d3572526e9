"""
Scenario records: naming, construction and price edits

Scenario shape:
    {id, name, description, category,
     config: {tier, current_price, new_price, price_change_pct, promotion?},
     constraints: {min_price, max_price, platform_compliant?, ...}}
"""

from .errors import ConstraintViolationError
from .utils import format_currency

TIER_LABELS = {
    'ad_supported': 'Ad-Supported',
    'ad_free': 'Ad-Free',
    'annual': 'Annual',
    'bundle': 'Bundle',
}


def tier_label(tier):
    return TIER_LABELS.get(tier, tier.replace('_', ' ').title())


def price_change_pct(current_price, new_price):
    """Percent change between two prices (already x100)"""
    return (new_price - current_price) / current_price * 100


def scenario_category(current_price, new_price):
    if new_price > current_price:
        return 'price_increase'
    if new_price < current_price:
        return 'price_decrease'
    return 'baseline'


def scenario_name(tier, current_price, new_price):
    label = tier_label(tier)
    if new_price > current_price:
        return f"{label} Price Increase to {format_currency(new_price)}"
    if new_price < current_price:
        return f"{label} Price Decrease to {format_currency(new_price)}"
    return f"{label} Hold at {format_currency(new_price)}"


def scenario_description(tier, current_price, new_price):
    change = price_change_pct(current_price, new_price)
    verb = 'Increase' if change > 0 else 'Decrease' if change < 0 else 'Keep'
    return (
        f"{verb} {tier_label(tier)} tier price from {format_currency(current_price)} "
        f"to {format_currency(new_price)} ({change:+.1f}%)"
    )


def build_scenario(scenario_id, tier, current_price, new_price, name=None, description=None,
                   category=None, promotion=None, constraints=None):
    """Assemble a scenario record with derived name, description and category"""
    config = {
        'tier': tier,
        'current_price': current_price,
        'new_price': new_price,
        'price_change_pct': price_change_pct(current_price, new_price),
    }
    if promotion:
        config['promotion'] = promotion

    return {
        'id': scenario_id,
        'name': name or scenario_name(tier, current_price, new_price),
        'description': description or scenario_description(tier, current_price, new_price),
        'category': category or scenario_category(current_price, new_price),
        'config': config,
        'constraints': constraints if constraints is not None else {},
    }


def validate_price(scenario, new_price):
    """Raise ConstraintViolationError if new_price is outside the scenario's bounds"""
    constraints = scenario.get('constraints') or {}
    min_price = constraints.get('min_price')
    max_price = constraints.get('max_price')

    if new_price is None or new_price <= 0:
        raise ConstraintViolationError(new_price, min_price, max_price)
    if min_price is not None and new_price < min_price:
        raise ConstraintViolationError(new_price, min_price, max_price)
    if max_price is not None and new_price > max_price:
        raise ConstraintViolationError(new_price, min_price, max_price)


def apply_price_edit(scenario, new_price):
    """
    Set a new price on a scenario in place

    The price is validated first; on violation the scenario is left unchanged.
    """
    validate_price(scenario, new_price)

    config = scenario['config']
    config['new_price'] = new_price
    config['price_change_pct'] = price_change_pct(config['current_price'], new_price)
    scenario['name'] = scenario_name(config['tier'], config['current_price'], new_price)
    scenario['description'] = scenario_description(config['tier'], config['current_price'], new_price)
    return scenario
