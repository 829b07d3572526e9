import pytest

from price_elasticity.utils import (
    format_currency,
    format_number,
    format_percent,
    format_signed_pct,
    round_half_up,
    safe_divide,
)


@pytest.mark.parametrize('value, expected', [
    (1234.5, '$1,234.50'),
    (-5, '-$5.00'),
    (0, '$0.00'),
    (None, 'N/A'),
    (float('nan'), 'N/A'),
])
def test_format_currency(value, expected):
    assert format_currency(value) == expected


def test_format_currency_decimals():
    assert format_currency(1_500_000.4, 0) == '$1,500,000'


def test_format_number():
    assert format_number(1234567) == '1,234,567'
    assert format_number(None) == 'N/A'


def test_percent_formats():
    assert format_percent(0.05) == '5.0%'
    assert format_signed_pct(12.34) == '+12.3%'
    assert format_signed_pct(-3.0) == '-3.0%'
    assert format_signed_pct(None) == 'N/A'


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(-2.5) == -2
    assert round_half_up(2.4) == 2


def test_safe_divide():
    assert safe_divide(1, 4) == 0.25
    assert safe_divide(1, 0) is None
    assert safe_divide(1, None) is None
