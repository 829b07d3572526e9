"""
Fixture Loader
Reads the static JSON/CSV fixtures into plain dicts and lists
"""

import csv
import json
import logging
from pathlib import Path

from .config import DATA_DIR
from .errors import MissingDataError

logger = logging.getLogger(__name__)

ELASTICITY_PARAMS_FILE = 'elasticity-params.json'
SCENARIOS_FILE = 'scenarios.json'
WEEKLY_AGGREGATED_FILE = 'weekly_aggregated.csv'
SEGMENT_ELASTICITY_FILE = 'segment_elasticity.json'
SEGMENT_KPIS_FILE = 'segment_kpis.csv'


def _coerce(value):
    """Numeric strings become floats, True/False become bools, empty becomes None"""
    if value is None or value == '':
        return None
    if value in ('True', 'true'):
        return True
    if value in ('False', 'false'):
        return False
    try:
        return float(value)
    except ValueError:
        return value


def load_json(path):
    with open(path) as f:
        return json.load(f)


def load_csv(path):
    with open(path, newline='') as f:
        reader = csv.DictReader(f)
        return [{key: _coerce(value) for key, value in row.items()} for row in reader]


def _resolve(data_dir, filename):
    path = Path(data_dir or DATA_DIR) / filename
    logger.info("Loading %s", path)
    return path


def load_elasticity_params(data_dir=None):
    return load_json(_resolve(data_dir, ELASTICITY_PARAMS_FILE))


def load_scenarios(data_dir=None):
    return load_json(_resolve(data_dir, SCENARIOS_FILE))


def load_weekly_aggregated(data_dir=None):
    return load_csv(_resolve(data_dir, WEEKLY_AGGREGATED_FILE))


def load_segment_elasticity(data_dir=None):
    return load_json(_resolve(data_dir, SEGMENT_ELASTICITY_FILE))


def load_segment_kpis(data_dir=None):
    return load_csv(_resolve(data_dir, SEGMENT_KPIS_FILE))


def weekly_data_for_tier(records, tier='all', start_date=None, end_date=None):
    """
    Filter weekly records by tier and inclusive ISO date range

    Args:
        records: weekly aggregated rows
        tier: tier name, or 'all' to keep every tier
        start_date, end_date: 'YYYY-MM-DD' strings (optional)

    Returns:
        list of rows sorted by date
    """
    filtered = [
        r for r in records
        if (tier == 'all' or r.get('tier') == tier)
        and (start_date is None or r['date'] >= start_date)
        and (end_date is None or r['date'] <= end_date)
    ]
    return sorted(filtered, key=lambda r: r['date'])


def latest_record(records, tier):
    """Most recent weekly row for a tier"""
    rows = weekly_data_for_tier(records, tier)
    if not rows:
        raise MissingDataError(
            f"No data available for tier: {tier}. Please ensure data is loaded correctly."
        )
    return rows[-1]
