#!/usr/bin/env python3
"""
Database queries for the campaign mapping service.

All reads used by the mapping endpoints live here so each request path
is a single query instead of per-county round trips.
"""

import json
import sqlite3

import config

DB_PATH = config.DB_PATH

SCHEMA = """
CREATE TABLE IF NOT EXISTS counties (
    fips_code TEXT PRIMARY KEY,
    county_name TEXT NOT NULL,
    state_name TEXT NOT NULL,
    state_abbr TEXT NOT NULL,
    centroid_lat REAL,
    centroid_lng REAL,
    region TEXT,
    geometry TEXT
);
CREATE INDEX IF NOT EXISTS idx_counties_state ON counties(state_abbr);

CREATE TABLE IF NOT EXISTS county_election_results (
    county_fips TEXT PRIMARY KEY REFERENCES counties(fips_code),
    county_name TEXT NOT NULL,
    state_abbr TEXT NOT NULL,
    state_name TEXT NOT NULL,
    election_data TEXT NOT NULL DEFAULT '{}'
);
CREATE INDEX IF NOT EXISTS idx_results_state ON county_election_results(state_abbr);

CREATE TABLE IF NOT EXISTS county_demographics (
    county_fips TEXT NOT NULL REFERENCES counties(fips_code),
    data_year INTEGER NOT NULL,
    population INTEGER,
    median_age REAL,
    median_household_income INTEGER,
    poverty_rate REAL,
    unemployment_rate REAL,
    college_degree_rate REAL,
    white_percentage REAL,
    black_percentage REAL,
    hispanic_percentage REAL,
    asian_percentage REAL,
    other_race_percentage REAL,
    population_density REAL,
    urban_percentage REAL,
    english_only_percentage REAL,
    spanish_home_percentage REAL,
    other_language_percentage REAL,
    voter_turnout_rate REAL,
    PRIMARY KEY (county_fips, data_year)
);

CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    username TEXT UNIQUE NOT NULL,
    password_hash TEXT NOT NULL,
    role TEXT NOT NULL DEFAULT 'user',
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    last_login TIMESTAMP
);

CREATE TABLE IF NOT EXISTS messages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    campaign_id TEXT NOT NULL,
    author_id INTEGER NOT NULL REFERENCES users(id),
    title TEXT NOT NULL,
    content TEXT NOT NULL,
    platform TEXT NOT NULL,
    status TEXT NOT NULL,
    approval_tier TEXT NOT NULL,
    approval_analysis TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS message_approvals (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    message_id INTEGER NOT NULL REFERENCES messages(id),
    approved_by_id INTEGER NOT NULL REFERENCES users(id),
    decision TEXT NOT NULL,
    comment TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""

DEMOGRAPHIC_FIELDS = [
    'population',
    'median_age',
    'median_household_income',
    'poverty_rate',
    'unemployment_rate',
    'college_degree_rate',
    'white_percentage',
    'black_percentage',
    'hispanic_percentage',
    'asian_percentage',
    'other_race_percentage',
    'population_density',
    'urban_percentage',
    'english_only_percentage',
    'spanish_home_percentage',
    'other_language_percentage',
    'voter_turnout_rate',
]


class DataRetrievalError(Exception):
    """The data store could not be read."""


def get_connection():
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    return conn


def init_db():
    """Create any missing tables."""
    conn = get_connection()
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()


def _fetch_all(query, params=()):
    """Run a read query, wrapping store failures in DataRetrievalError."""
    try:
        conn = get_connection()
    except sqlite3.Error as e:
        raise DataRetrievalError(f"Could not open database: {e}") from e

    try:
        cursor = conn.cursor()
        cursor.execute(query, params)
        return cursor.fetchall()
    except sqlite3.Error as e:
        raise DataRetrievalError(str(e)) from e
    finally:
        conn.close()


def get_county_election_rows(state=None):
    """Get every county's election history, optionally for one state."""
    query = """
        SELECT
            cer.county_fips,
            cer.county_name,
            cer.state_abbr,
            cer.state_name,
            cer.election_data
        FROM county_election_results cer
        JOIN counties c ON c.fips_code = cer.county_fips
    """
    params = []
    if state:
        query += " WHERE cer.state_abbr = ?"
        params.append(state)
    query += " ORDER BY cer.state_abbr, cer.county_name"

    rows = []
    for row in _fetch_all(query, params):
        rows.append({
            'fips_code': row['county_fips'],
            'county_name': row['county_name'],
            'state_abbr': row['state_abbr'],
            'state_name': row['state_name'],
            'election_data': json.loads(row['election_data'] or '{}'),
        })
    return rows


def get_county_demographic_rows(year, state=None):
    """Get county + demographic snapshot rows for one data year."""
    columns = ', '.join(f"d.{f}" for f in DEMOGRAPHIC_FIELDS)
    query = f"""
        SELECT
            c.fips_code,
            c.county_name,
            c.state_abbr,
            c.state_name,
            d.data_year,
            {columns}
        FROM county_demographics d
        JOIN counties c ON c.fips_code = d.county_fips
        WHERE d.data_year = ?
    """
    params = [year]
    if state:
        query += " AND c.state_abbr = ?"
        params.append(state)
    query += " ORDER BY c.state_abbr, c.county_name"

    return [dict(row) for row in _fetch_all(query, params)]


def get_all_counties(state=None):
    """Get county reference data, sorted by state then name."""
    query = """
        SELECT fips_code, county_name, state_name, state_abbr,
               region, centroid_lat, centroid_lng
        FROM counties
    """
    params = []
    if state:
        query += " WHERE state_abbr = ?"
        params.append(state)
    query += " ORDER BY state_abbr, county_name"

    return [dict(row) for row in _fetch_all(query, params)]


def get_county(fips):
    """Get a single county with its election history, or None."""
    rows = _fetch_all("""
        SELECT
            c.fips_code, c.county_name, c.state_name, c.state_abbr,
            c.region, c.centroid_lat, c.centroid_lng,
            cer.election_data
        FROM counties c
        LEFT JOIN county_election_results cer ON cer.county_fips = c.fips_code
        WHERE c.fips_code = ?
    """, (fips,))
    if not rows:
        return None

    county = dict(rows[0])
    county['election_data'] = json.loads(county['election_data'] or '{}')
    return county


def get_county_demographic_history(fips, limit=5):
    """Most recent demographic snapshots for a county, newest first."""
    columns = ', '.join(DEMOGRAPHIC_FIELDS)
    rows = _fetch_all(f"""
        SELECT county_fips, data_year, {columns}
        FROM county_demographics
        WHERE county_fips = ?
        ORDER BY data_year DESC
        LIMIT ?
    """, (fips, limit))
    return [dict(row) for row in rows]


def get_county_geojson(state=None):
    """Build a FeatureCollection from stored county boundaries."""
    query = """
        SELECT fips_code, county_name, state_abbr, geometry
        FROM counties
        WHERE geometry IS NOT NULL
    """
    params = []
    if state:
        query += " AND state_abbr = ?"
        params.append(state)
    query += " ORDER BY fips_code"

    features = []
    for row in _fetch_all(query, params):
        features.append({
            'type': 'Feature',
            'properties': {
                'GEOID': row['fips_code'],
                'NAME': row['county_name'],
                'STATE': row['state_abbr'],
            },
            'geometry': json.loads(row['geometry']),
        })

    return {'type': 'FeatureCollection', 'features': features}


def get_db_stats():
    """Row counts for the mapping tables."""
    stats = {}
    for table in ['counties', 'county_election_results', 'county_demographics']:
        rows = _fetch_all(f"SELECT COUNT(*) FROM {table}")
        stats[table] = rows[0][0]
    return stats


# ============== IMPORT / WRITE SIDE ==============

def upsert_county(conn, fips, county_name, state_name, state_abbr,
                  centroid_lat=None, centroid_lng=None, region=None, geometry=None):
    """Insert a county or refresh its names and (if given) boundary."""
    conn.execute("""
        INSERT INTO counties
            (fips_code, county_name, state_name, state_abbr, centroid_lat, centroid_lng, region, geometry)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(fips_code) DO UPDATE SET
            county_name = excluded.county_name,
            state_name = excluded.state_name,
            state_abbr = excluded.state_abbr,
            centroid_lat = COALESCE(excluded.centroid_lat, counties.centroid_lat),
            centroid_lng = COALESCE(excluded.centroid_lng, counties.centroid_lng),
            region = COALESCE(excluded.region, counties.region),
            geometry = COALESCE(excluded.geometry, counties.geometry)
    """, (fips, county_name, state_name, state_abbr, centroid_lat, centroid_lng, region,
          json.dumps(geometry) if geometry is not None else None))


def upsert_county_election_result(conn, fips, county_name, state_abbr, state_name, election_data):
    """Replace a county's year -> {D, R, O, T} map."""
    conn.execute("""
        INSERT INTO county_election_results
            (county_fips, county_name, state_abbr, state_name, election_data)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(county_fips) DO UPDATE SET
            county_name = excluded.county_name,
            state_abbr = excluded.state_abbr,
            state_name = excluded.state_name,
            election_data = excluded.election_data
    """, (fips, county_name, state_abbr, state_name,
          json.dumps({str(year): result for year, result in election_data.items()}, sort_keys=True)))


def upsert_county_demographic(conn, fips, year, values):
    """Insert or replace one demographic snapshot. Unknown keys are ignored."""
    fields = [f for f in DEMOGRAPHIC_FIELDS if f in values]
    columns = ', '.join(['county_fips', 'data_year'] + fields)
    placeholders = ', '.join('?' for _ in range(len(fields) + 2))
    updates = ', '.join(f"{f} = excluded.{f}" for f in fields) or "data_year = excluded.data_year"
    conn.execute(f"""
        INSERT INTO county_demographics ({columns})
        VALUES ({placeholders})
        ON CONFLICT(county_fips, data_year) DO UPDATE SET {updates}
    """, [fips, year] + [values[f] for f in fields])
