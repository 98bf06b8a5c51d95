"""
County demographics for the campaign mapping service.
Fetches ACS 5-year estimates from the Census API and serves cached
demographic snapshots out of the database.
"""

import json
import logging

import requests

import analysis
import config
import queries

logger = logging.getLogger(__name__)

# Variables to fetch
VARIABLES = [
    "NAME",
    "B01001_001E",  # Total population
    "B01002_001E",  # Median age
    "B19013_001E",  # Median household income
    "B17001_001E",  # Poverty: total with status determined
    "B17001_002E",  # Poverty: below poverty level
    "B23025_003E",  # Civilian labor force
    "B23025_005E",  # Unemployed
    "B15003_001E",  # Education: Total 25+
    "B15003_022E",  # Bachelor's
    "B15003_023E",  # Master's
    "B15003_024E",  # Professional
    "B15003_025E",  # Doctorate
    "B02001_001E",  # Race: Total
    "B02001_002E",  # White alone
    "B02001_003E",  # Black alone
    "B02001_005E",  # Asian alone
    "B03003_001E",  # Hispanic origin: Total
    "B03003_003E",  # Hispanic or Latino
    "B16001_001E",  # Language at home: Total 5+
    "B16001_002E",  # Speak only English
    "B16001_003E",  # Spanish
]

# Fields returned by the demographics endpoint, keyed by column name
RESPONSE_FIELDS = {
    'population': 'population',
    'median_age': 'medianAge',
    'median_household_income': 'medianHouseholdIncome',
    'poverty_rate': 'povertyRate',
    'unemployment_rate': 'unemploymentRate',
    'college_degree_rate': 'collegeDegreeRate',
    'white_percentage': 'whitePercentage',
    'black_percentage': 'blackPercentage',
    'hispanic_percentage': 'hispanicPercentage',
    'asian_percentage': 'asianPercentage',
    'population_density': 'populationDensity',
    'urban_percentage': 'urbanPercentage',
}


def safe_int(val):
    """Safely convert to int, handling None and negative sentinel values."""
    try:
        v = int(val)
        return v if v >= 0 else 0
    except (TypeError, ValueError):
        return 0


def safe_float(val):
    """Safely convert to float."""
    try:
        v = float(val)
        return v if v >= 0 else None
    except (TypeError, ValueError):
        return None


def pct(part, total):
    return round(part / total * 100, 1) if total > 0 else None


def parse_acs_record(record):
    """Turn one ACS API row (as a header -> value dict) into demographic fields."""
    pop = safe_int(record.get('B01001_001E'))
    income = safe_int(record.get('B19013_001E'))
    median_age = safe_float(record.get('B01002_001E'))

    edu_total = safe_int(record.get('B15003_001E'))
    college_plus = sum(safe_int(record.get(v)) for v in
                       ('B15003_022E', 'B15003_023E', 'B15003_024E', 'B15003_025E'))

    race_total = safe_int(record.get('B02001_001E'))
    lang_total = safe_int(record.get('B16001_001E'))
    english = safe_int(record.get('B16001_002E'))
    spanish = safe_int(record.get('B16001_003E'))

    return {
        'population': pop,
        'median_age': median_age if median_age else None,
        'median_household_income': income if income > 0 else None,
        'poverty_rate': pct(safe_int(record.get('B17001_002E')), safe_int(record.get('B17001_001E'))),
        'unemployment_rate': pct(safe_int(record.get('B23025_005E')), safe_int(record.get('B23025_003E'))),
        'college_degree_rate': pct(college_plus, edu_total),
        'white_percentage': pct(safe_int(record.get('B02001_002E')), race_total),
        'black_percentage': pct(safe_int(record.get('B02001_003E')), race_total),
        'asian_percentage': pct(safe_int(record.get('B02001_005E')), race_total),
        'hispanic_percentage': pct(safe_int(record.get('B03003_003E')), safe_int(record.get('B03003_001E'))),
        'english_only_percentage': pct(english, lang_total),
        'spanish_home_percentage': pct(spanish, lang_total),
        'other_language_percentage': pct(lang_total - english - spanish, lang_total),
    }


def fetch_county_demographics(year, state_fips=None):
    """
    Fetch ACS county demographics for a data year.

    Returns {fips: {'county_name', 'state_name', ...fields}}. HTTP errors
    propagate to the caller.
    """
    url = config.CENSUS_API.format(year=year)
    params = {
        'get': ','.join(VARIABLES),
        'for': 'county:*',
    }
    if state_fips:
        params['in'] = f"state:{state_fips}"
    if config.CENSUS_API_KEY:
        params['key'] = config.CENSUS_API_KEY

    response = requests.get(url, params=params, timeout=30)
    response.raise_for_status()
    data = response.json()

    # First row is headers
    headers = data[0]
    results = {}
    for row in data[1:]:
        record = dict(zip(headers, row))
        fips = f"{record['state']}{record['county']}"
        # "Cook County, Illinois" -> ("Cook County", "Illinois")
        county_name, _, state_name = record['NAME'].partition(', ')
        results[fips] = {
            'county_name': county_name,
            'state_name': state_name,
            **parse_acs_record(record),
        }

    logger.info(f"Fetched ACS {year} demographics for {len(results)} counties")
    return results


def refresh_demographics(year, state_fips=None):
    """Fetch ACS data and store it as the `year` snapshot."""
    data = fetch_county_demographics(year, state_fips)

    conn = queries.get_connection()
    for fips, values in data.items():
        state_abbr = analysis.STATE_ABBREVIATIONS.get(values['state_name'], '')
        queries.upsert_county(conn, fips, values['county_name'], values['state_name'], state_abbr)
        queries.upsert_county_demographic(conn, fips, year, values)
    conn.commit()
    conn.close()
    return len(data)


def format_demographic_row(row):
    county = {
        'fipsCode': row['fips_code'],
        'countyName': row['county_name'],
        'stateAbbr': row['state_abbr'],
        'stateName': row['state_name'],
    }
    for column, key in RESPONSE_FIELDS.items():
        county[key] = row.get(column)
    return county


def summarize_demographics(counties):
    """Population total plus average and (upper) median household income."""
    total_pop = sum(c['population'] or 0 for c in counties)
    incomes = sorted(c['medianHouseholdIncome'] for c in counties if c['medianHouseholdIncome'])

    return {
        'totalCounties': len(counties),
        'totalPopulation': total_pop,
        'averageIncome': round(sum(incomes) / len(incomes)) if incomes else 0,
        'medianIncome': incomes[len(incomes) // 2] if incomes else None,
    }


def demographics_cache_key(year, state=None):
    key = f"demographics:{year}"
    if state:
        key += f":{state}"
    return key


def get_demographics(year, state=None):
    """Serialized demographics response for a snapshot year (read-through cached)."""
    if not isinstance(year, int) or year <= 0:
        raise analysis.ValidationError(f"Invalid data year: {year!r}")
    state = analysis.normalize_state(state)

    key = demographics_cache_key(year, state)
    cached = analysis.cache_get(key)
    if cached is not None:
        return cached

    counties = [format_demographic_row(row) for row in queries.get_county_demographic_rows(year, state)]

    response = {
        'counties': counties,
        'geoJson': queries.get_county_geojson(state),
        'summary': summarize_demographics(counties),
    }
    payload = json.dumps(response)

    analysis.cache_set(key, payload)
    return payload


if __name__ == "__main__":
    import sys

    year = int(sys.argv[1]) if len(sys.argv) > 1 else 2022
    state_fips = sys.argv[2] if len(sys.argv) > 2 else None

    queries.init_db()
    print(f"Fetching ACS {year} county data...")
    count = refresh_demographics(year, state_fips)
    print(f"Stored {count} county snapshots")
