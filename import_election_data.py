#!/usr/bin/env python3
"""
Import county presidential results, boundaries and demographics.

Expects, under ELECTION_DATA_DIR (or the directory given on the command line):
  county_election_results.csv   required, wide or long format
  county_boundaries.geojson     optional
  county_demographics.csv       optional

Wide format has one row per county and YYYY_D / YYYY_R / YYYY_O / YYYY_T
columns. Long format has one row per county and year:
county_fips,county_name,state_abbr,state_name,year,democratic_votes,republican_votes,other_votes,total_votes
"""

import json
import re
import sqlite3
import sys
from pathlib import Path

import pandas as pd

import analysis
import config
import queries

YEAR_COLUMN_RE = re.compile(r'^(\d{4})_([DROT])$')

FIPS_COLUMNS = ['fips', 'county_fips', 'FIPS', 'fips_code']
COUNTY_NAME_COLUMNS = ['county_name', 'County', 'NAME']
STATE_NAME_COLUMNS = ['state_name', 'StateName']
STATE_ABBR_COLUMNS = ['state_abbr', 'State', 'STATE']
YEAR_COLUMNS = ['year', 'Year', 'YEAR']
VOTE_COLUMNS = {
    'D': ['democratic_votes', 'dem_votes', 'D'],
    'R': ['republican_votes', 'rep_votes', 'R'],
    'O': ['other_votes', 'other', 'O'],
    'T': ['total_votes', 'total', 'T'],
}


def first_value(record, columns, default=''):
    """First non-empty value among candidate column names."""
    for col in columns:
        value = record.get(col)
        if value is not None and str(value).strip() != '':
            return str(value).strip()
    return default


def normalize_fips(value):
    """'0500000US17031' / '6037' -> '17031' / '06037'. Empty -> None."""
    fips = str(value or '').strip()
    if 'US' in fips:
        fips = fips.split('US')[1]
    if fips.endswith('.0'):
        fips = fips[:-2]
    return fips.zfill(5) if fips else None


def safe_votes(value):
    """Vote counts from CSV text; blanks and junk become 0."""
    try:
        v = int(float(value))
        return v if v >= 0 else 0
    except (TypeError, ValueError):
        return 0


def county_identity(record):
    """County name, state name and state abbreviation for a CSV record."""
    geo = first_value(record, ['geo'])
    if ',' in geo:
        county_name, state_name = [s.strip() for s in geo.split(',', 1)]
    else:
        county_name = first_value(record, COUNTY_NAME_COLUMNS, geo)
        state_name = first_value(record, STATE_NAME_COLUMNS)

    state_abbr = analysis.STATE_ABBREVIATIONS.get(state_name) or first_value(record, STATE_ABBR_COLUMNS)
    if not state_name and state_abbr:
        state_name = next((name for name, abbr in analysis.STATE_ABBREVIATIONS.items()
                           if abbr == state_abbr), '')
    return county_name, state_name, state_abbr.upper()


def load_election_csv(path):
    """
    Parse an election results CSV (wide or long) into
    {fips: {'county_name', 'state_name', 'state_abbr', 'elections': {year: {D, R, O, T}}}}.

    Years that are not valid election years for the county's state are dropped,
    and totals short of D + R are raised to D + R + O.
    """
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    year_columns = {col: YEAR_COLUMN_RE.match(col) for col in df.columns}
    year_columns = {col: m.groups() for col, m in year_columns.items() if m}
    is_wide = bool(year_columns)

    counties = {}
    for record in df.to_dict('records'):
        fips = normalize_fips(first_value(record, FIPS_COLUMNS))
        if not fips:
            continue

        if fips not in counties:
            county_name, state_name, state_abbr = county_identity(record)
            counties[fips] = {
                'county_name': county_name,
                'state_name': state_name,
                'state_abbr': state_abbr,
                'elections': {},
            }
        county = counties[fips]

        if is_wide:
            for col, (year, party) in year_columns.items():
                result = county['elections'].setdefault(int(year), {'D': 0, 'R': 0, 'O': 0, 'T': 0})
                result[party] = safe_votes(record[col])
        else:
            year = first_value(record, YEAR_COLUMNS)
            if not year.isdigit():
                continue
            county['elections'][int(year)] = {
                party: safe_votes(first_value(record, columns, '0'))
                for party, columns in VOTE_COLUMNS.items()
            }

    for county in counties.values():
        county['elections'] = {
            year: complete_total(result) for year, result in county['elections'].items()
            if analysis.validate_election_year(year, county['state_abbr'])
        }

    return counties


def complete_total(result):
    """Raise a total that is short of D + R up to D + R + O."""
    if result['T'] < result['D'] + result['R']:
        result['T'] = result['D'] + result['R'] + result['O']
    return result


def polygon_centroid(coordinates):
    """Mean of every coordinate pair in a (Multi)Polygon coordinate array."""
    sum_lng = sum_lat = 0.0
    count = 0

    def walk(coords):
        nonlocal sum_lng, sum_lat, count
        for coord in coords:
            if isinstance(coord[0], (list, tuple)):
                walk(coord)
            else:
                sum_lng += coord[0]
                sum_lat += coord[1]
                count += 1

    walk(coordinates)
    if count == 0:
        return None, None
    return sum_lat / count, sum_lng / count


def load_county_boundaries(path):
    """Read county boundaries: {fips: {'geometry', 'centroid_lat', 'centroid_lng'}}."""
    with open(path, 'r') as f:
        geojson = json.load(f)

    boundaries = {}
    for feature in geojson.get('features', []):
        props = feature.get('properties') or {}
        fips = normalize_fips(props.get('GEOID') or props.get('FIPS') or props.get('fips_code'))
        geometry = feature.get('geometry')
        if not fips or not geometry:
            continue

        lat, lng = polygon_centroid(geometry['coordinates'])
        boundaries[fips] = {'geometry': geometry, 'centroid_lat': lat, 'centroid_lng': lng}

    return boundaries


def load_demographics_csv(path):
    """
    Parse a demographics CSV into (fips, year, values) tuples.

    Returns (records, skipped); rows without a usable fips or year are skipped.
    """
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    int_fields = {'population', 'median_household_income'}

    records = []
    skipped = 0
    for record in df.to_dict('records'):
        fips = normalize_fips(first_value(record, FIPS_COLUMNS))
        try:
            # Exported sheets often write years as 2020.0
            year = int(float(first_value(record, YEAR_COLUMNS, '2020')))
        except (ValueError, OverflowError):
            year = None
        if not fips or not year or year <= 0:
            skipped += 1
            continue

        values = {}
        for field in queries.DEMOGRAPHIC_FIELDS:
            raw = record.get(field, '')
            try:
                number = float(raw)
            except (TypeError, ValueError):
                values[field] = None
                continue
            values[field] = int(number) if field in int_fields else number
        records.append((fips, year, values))

    return records, skipped


def import_election_data(data_dir=None):
    """Import everything found in data_dir. Returns (imported, errors)."""
    data_dir = Path(data_dir or config.ELECTION_DATA_DIR)
    election_csv = data_dir / "county_election_results.csv"
    boundaries_json = data_dir / "county_boundaries.geojson"
    demographics_csv = data_dir / "county_demographics.csv"

    if not election_csv.exists():
        print(f"Election data file not found: {election_csv}")
        print(__doc__)
        return 0, 0

    queries.init_db()

    print("Loading election data...")
    counties = load_election_csv(election_csv)

    boundaries = {}
    if boundaries_json.exists():
        print("Loading county boundaries...")
        boundaries = load_county_boundaries(boundaries_json)

    print("Importing to database...")
    conn = queries.get_connection()
    imported = 0
    errors = 0

    for fips, county in counties.items():
        boundary = boundaries.get(fips, {})
        try:
            queries.upsert_county(
                conn, fips, county['county_name'], county['state_name'], county['state_abbr'],
                centroid_lat=boundary.get('centroid_lat'),
                centroid_lng=boundary.get('centroid_lng'),
                geometry=boundary.get('geometry'),
            )
            queries.upsert_county_election_result(
                conn, fips, county['county_name'], county['state_abbr'], county['state_name'],
                county['elections'],
            )
            imported += 1
        except sqlite3.Error as e:
            print(f"  Error importing {fips}: {e}")
            errors += 1
            continue

        if imported % 100 == 0:
            print(f"  Processed {imported} counties...")

    conn.commit()

    if demographics_csv.exists():
        print("Loading demographic data...")
        count = 0
        records, skipped = load_demographics_csv(demographics_csv)
        for fips, year, values in records:
            try:
                queries.upsert_county_demographic(conn, fips, year, values)
                count += 1
            except sqlite3.Error as e:
                print(f"  Error importing demographics for {fips}: {e}")
        conn.commit()
        print(f"  Imported {count} demographic records")
        if skipped:
            print(f"  Skipped {skipped} rows without a usable fips or year")

    conn.close()

    print(f"\nImport completed: {imported} counties, {errors} errors")
    return imported, errors


if __name__ == "__main__":
    import_election_data(sys.argv[1] if len(sys.argv) > 1 else None)
