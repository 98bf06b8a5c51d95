#!/usr/bin/env python3
"""
Swing analysis for the campaign mapping service.

Computes county-level partisan margin swings between two presidential
elections and rolls them up into a cached summary.
"""

import json
import logging

import cache
import config
import queries

logger = logging.getLogger(__name__)

VALID_ELECTION_YEARS = list(range(1892, 2025, 4))
MODERN_ELECTION_YEARS = [y for y in VALID_ELECTION_YEARS if y >= 1960]

# Years with no county data for a state
MISSING_STATE_YEARS = {
    'MS': {1904, 1908},
    'TX': {1892, 1896, 1900, 1904, 1908},
}

STATE_ABBREVIATIONS = {
    'Alabama': 'AL', 'Alaska': 'AK', 'Arizona': 'AZ', 'Arkansas': 'AR', 'California': 'CA',
    'Colorado': 'CO', 'Connecticut': 'CT', 'Delaware': 'DE', 'Florida': 'FL', 'Georgia': 'GA',
    'Hawaii': 'HI', 'Idaho': 'ID', 'Illinois': 'IL', 'Indiana': 'IN', 'Iowa': 'IA',
    'Kansas': 'KS', 'Kentucky': 'KY', 'Louisiana': 'LA', 'Maine': 'ME', 'Maryland': 'MD',
    'Massachusetts': 'MA', 'Michigan': 'MI', 'Minnesota': 'MN', 'Mississippi': 'MS', 'Missouri': 'MO',
    'Montana': 'MT', 'Nebraska': 'NE', 'Nevada': 'NV', 'New Hampshire': 'NH', 'New Jersey': 'NJ',
    'New Mexico': 'NM', 'New York': 'NY', 'North Carolina': 'NC', 'North Dakota': 'ND', 'Ohio': 'OH',
    'Oklahoma': 'OK', 'Oregon': 'OR', 'Pennsylvania': 'PA', 'Rhode Island': 'RI', 'South Carolina': 'SC',
    'South Dakota': 'SD', 'Tennessee': 'TN', 'Texas': 'TX', 'Utah': 'UT', 'Vermont': 'VT',
    'Virginia': 'VA', 'Washington': 'WA', 'West Virginia': 'WV', 'Wisconsin': 'WI', 'Wyoming': 'WY',
    'District of Columbia': 'DC',
}
STATE_CODES = set(STATE_ABBREVIATIONS.values())


class ValidationError(ValueError):
    """Request parameters were rejected before any data access."""


def validate_election_year(year, state=None, modern_only=False):
    """Check a year against the known election years (and state data gaps)."""
    years = MODERN_ELECTION_YEARS if modern_only else VALID_ELECTION_YEARS
    if year not in years:
        return False
    if state and year in MISSING_STATE_YEARS.get(state, ()):
        return False
    return True


def normalize_state(state):
    """Return an upper-case two-letter code, None for no filter."""
    if state is None or state == '':
        return None
    code = str(state).strip().upper()
    if code not in STATE_CODES:
        raise ValidationError(f"Invalid state code: {state!r}")
    return code


def parse_year(value, default=None):
    """Parse a query-string year."""
    if value is None or value == '':
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid year: {value!r}")


def validate_swing_request(from_year, to_year, state=None):
    """Validate a swing request. Returns the normalized state code."""
    for year in (from_year, to_year):
        if not validate_election_year(year, modern_only=True):
            raise ValidationError(f"Invalid election year: {year}")
    return normalize_state(state)


def usable_result(result):
    """True if the result has votes and a total that covers D + R."""
    if not result or not result.get('T'):
        return False
    return result['T'] >= result.get('D', 0) + result.get('R', 0)


def dem_margin(result):
    """Democratic margin as a fraction of total votes, None if unusable."""
    if not usable_result(result):
        return None
    return result.get('D', 0) / result['T'] - result.get('R', 0) / result['T']


def calculate_swing(from_data, to_data):
    """
    Swing in percentage points between two ElectionResult snapshots.

    Positive = Democratic gain. Returns None when either snapshot is
    missing, has zero total votes, or has a total below D + R.
    """
    from_margin = dem_margin(from_data)
    to_margin = dem_margin(to_data)
    if from_margin is None or to_margin is None:
        return None
    return (to_margin - from_margin) * 100


def classify_swing(swing):
    """Direction and rough size of a swing."""
    if swing > 0:
        direction = 'D'
    elif swing < 0:
        direction = 'R'
    else:
        return {'direction': 'none', 'magnitude': 'none'}

    size = abs(swing)
    if size >= 10:
        magnitude = 'large'
    elif size >= 3:
        magnitude = 'moderate'
    else:
        magnitude = 'small'
    return {'direction': direction, 'magnitude': magnitude}


def compute_county_swing(row, from_year, to_year):
    """Per-county swing record, or None if the county has to be skipped."""
    election_data = row.get('election_data') or {}
    from_data = election_data.get(str(from_year))
    to_data = election_data.get(str(to_year))

    swing = calculate_swing(from_data, to_data)
    if swing is None:
        return None

    return {
        'fipsCode': row['fips_code'],
        'countyName': row['county_name'],
        'stateAbbr': row['state_abbr'],
        'stateName': row['state_name'],
        'fromYear': from_data,
        'toYear': to_data,
        'swing': swing,
        'marginChange': swing,
    }


def summarize_swings(counties):
    """Gain counts and average swing for a list of county swing records."""
    swings = [c['swing'] for c in counties]
    return {
        'totalCounties': len(swings),
        'democraticGains': sum(1 for s in swings if s > 0),
        'republicanGains': sum(1 for s in swings if s < 0),
        'averageSwing': sum(swings) / len(swings) if swings else 0,
    }


def swing_cache_key(from_year, to_year, state=None):
    key = f"swing:{from_year}:{to_year}"
    if state:
        key += f":{state}"
    return key


def cache_get(key):
    """Read from the response cache; a broken cache counts as a miss."""
    try:
        return cache.get_cache().get(key)
    except Exception:
        logger.warning(f"Cache read failed for {key}", exc_info=True)
        return None


def cache_set(key, payload):
    """Write to the response cache; failures are logged and ignored."""
    try:
        cache.get_cache().set(key, payload, ex=config.CACHE_TTL_SECONDS)
    except Exception:
        logger.warning(f"Cache write failed for {key}", exc_info=True)


def get_swing_analysis(from_year, to_year, state=None):
    """
    Swing analysis response for a pair of election years.

    Returns the serialized JSON payload. A cached payload is returned
    verbatim; otherwise counties are loaded, swings computed and the
    result cached for CACHE_TTL_SECONDS.
    """
    state = validate_swing_request(from_year, to_year, state)

    key = swing_cache_key(from_year, to_year, state)
    cached = cache_get(key)
    if cached is not None:
        return cached

    rows = queries.get_county_election_rows(state)

    counties = []
    for row in rows:
        record = compute_county_swing(row, from_year, to_year)
        if record is not None:
            counties.append(record)

    skipped = len(rows) - len(counties)
    if skipped:
        logger.debug(f"Skipped {skipped} counties without {from_year}/{to_year} data")

    response = {
        'counties': counties,
        'geoJson': queries.get_county_geojson(state),
        'summary': summarize_swings(counties),
    }
    payload = json.dumps(response)

    cache_set(key, payload)
    return payload


def get_county_history(fips):
    """
    Historical results and notable patterns for one county.

    Returns None if the county does not exist. Years with zero total
    votes (or a total below D + R) are left out.
    """
    county = queries.get_county(fips)
    if not county:
        return None

    election_data = county.pop('election_data')
    results = []
    for year in MODERN_ELECTION_YEARS:
        data = election_data.get(str(year))
        if not usable_result(data):
            continue
        dem, rep, total = data.get('D', 0), data.get('R', 0), data['T']
        results.append({
            'year': year,
            'democratic': dem,
            'republican': rep,
            'other': data.get('O', 0),
            'total': total,
            'democraticPct': dem / total * 100,
            'republicanPct': rep / total * 100,
            'margin': (dem - rep) / total * 100,
        })

    swings = []
    for prev, curr in zip(results, results[1:]):
        swing = curr['margin'] - prev['margin']
        swings.append({
            'fromYear': prev['year'],
            'toYear': curr['year'],
            'swing': swing,
            **classify_swing(swing),
        })

    largest_swing = max(swings, key=lambda s: abs(s['swing'])) if swings else None
    margins = [r['margin'] for r in results]

    return {
        'county': {
            'fipsCode': county['fips_code'],
            'countyName': county['county_name'],
            'stateName': county['state_name'],
            'stateAbbr': county['state_abbr'],
            'region': county['region'],
            'centroidLat': county['centroid_lat'],
            'centroidLng': county['centroid_lng'],
        },
        'historicalResults': results,
        'swings': swings,
        'demographics': queries.get_county_demographic_history(fips),
        'patterns': {
            'largestSwing': largest_swing,
            'averageMargin': sum(margins) / len(margins) if margins else 0,
            'democraticWins': sum(1 for m in margins if m > 0),
            'republicanWins': sum(1 for m in margins if m < 0),
        },
    }


def get_election_years():
    """Presidential elections available for swing analysis, newest first."""
    return [
        {'year': year, 'label': f"{year} Presidential Election"}
        for year in sorted(MODERN_ELECTION_YEARS, reverse=True)
    ]
