#!/usr/bin/env python3
"""
Seed a handful of well-known counties with generated election and
demographic data, for local development.
"""

import random

import analysis
import queries

SAMPLE_COUNTIES = [
    {'fips': '17031', 'name': 'Cook County', 'state': 'Illinois', 'abbr': 'IL', 'lat': 41.8781, 'lng': -87.6298},
    {'fips': '06037', 'name': 'Los Angeles County', 'state': 'California', 'abbr': 'CA', 'lat': 34.0522, 'lng': -118.2437},
    {'fips': '48201', 'name': 'Harris County', 'state': 'Texas', 'abbr': 'TX', 'lat': 29.7604, 'lng': -95.3698},
    {'fips': '36061', 'name': 'New York County', 'state': 'New York', 'abbr': 'NY', 'lat': 40.7128, 'lng': -74.0060},
    {'fips': '12086', 'name': 'Miami-Dade County', 'state': 'Florida', 'abbr': 'FL', 'lat': 25.7617, 'lng': -80.1918},
]


def generate_election_data(rng):
    """Results for every modern election; D and R share ~90% of the vote."""
    data = {}
    for year in analysis.MODERN_ELECTION_YEARS:
        total = rng.randint(100000, 600000)
        dem_pct = 0.35 + rng.random() * 0.3
        rep_pct = 0.9 - dem_pct
        data[year] = {
            'D': int(total * dem_pct),
            'R': int(total * rep_pct),
            'O': int(total * 0.1),
            'T': total,
        }
    return data


def generate_demographics(rng):
    return {
        'population': rng.randint(50000, 2050000),
        'median_age': round(35 + rng.random() * 10, 1),
        'median_household_income': rng.randint(40000, 80000),
        'poverty_rate': round(5 + rng.random() * 20, 1),
        'unemployment_rate': round(3 + rng.random() * 10, 1),
        'college_degree_rate': round(15 + rng.random() * 35, 1),
        'white_percentage': round(30 + rng.random() * 50, 1),
        'black_percentage': round(rng.random() * 40, 1),
        'hispanic_percentage': round(rng.random() * 40, 1),
        'asian_percentage': round(rng.random() * 20, 1),
        'other_race_percentage': round(rng.random() * 10, 1),
        'population_density': round(rng.random() * 5000, 1),
        'urban_percentage': round(20 + rng.random() * 70, 1),
        'english_only_percentage': round(50 + rng.random() * 40, 1),
        'spanish_home_percentage': round(rng.random() * 30, 1),
        'other_language_percentage': round(rng.random() * 20, 1),
        'voter_turnout_rate': round(50 + rng.random() * 30, 1),
    }


def seed_election_data(seed=2024, data_year=2020):
    """Insert the sample counties. Same seed, same data."""
    rng = random.Random(seed)
    queries.init_db()

    conn = queries.get_connection()
    for county in SAMPLE_COUNTIES:
        queries.upsert_county(conn, county['fips'], county['name'], county['state'], county['abbr'],
                              centroid_lat=county['lat'], centroid_lng=county['lng'], region='Midlands')
        queries.upsert_county_election_result(conn, county['fips'], county['name'], county['abbr'],
                                              county['state'], generate_election_data(rng))
        queries.upsert_county_demographic(conn, county['fips'], data_year, generate_demographics(rng))
    conn.commit()
    conn.close()

    return len(SAMPLE_COUNTIES)


if __name__ == "__main__":
    print("Seeding election mapping data...")
    count = seed_election_data()
    print(f"Seeded {count} counties")
