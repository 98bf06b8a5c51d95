"""Tests for the data access layer against a temporary SQLite database."""

import sqlite3
from unittest.mock import patch

import pytest

import queries

SQUARE = {'type': 'Polygon', 'coordinates': [[[0, 0], [0, 1], [1, 1], [1, 0], [0, 0]]]}


class TestCountyElectionRows:

    def test_rows_with_parsed_year_map(self, add_county):
        add_county('17031', 'Cook County', 'Illinois', 'IL',
                   {2020: {'D': 1, 'R': 2, 'O': 0, 'T': 3}})

        rows = queries.get_county_election_rows()

        assert rows == [{
            'fips_code': '17031',
            'county_name': 'Cook County',
            'state_abbr': 'IL',
            'state_name': 'Illinois',
            'election_data': {'2020': {'D': 1, 'R': 2, 'O': 0, 'T': 3}},
        }]

    def test_state_filter(self, add_county):
        add_county('17031', 'Cook County', 'Illinois', 'IL', {})
        add_county('48201', 'Harris County', 'Texas', 'TX', {})

        assert [r['fips_code'] for r in queries.get_county_election_rows('TX')] == ['48201']
        assert len(queries.get_county_election_rows()) == 2

    def test_store_failure_is_retrieval_error(self, db_path):
        with patch.object(queries, 'get_connection', side_effect=sqlite3.OperationalError("unable to open")):
            with pytest.raises(queries.DataRetrievalError):
                queries.get_county_election_rows()

    def test_query_failure_is_retrieval_error(self, tmp_path, monkeypatch):
        # Database without the schema
        monkeypatch.setattr(queries, 'DB_PATH', tmp_path / "empty.db")
        with pytest.raises(queries.DataRetrievalError):
            queries.get_county_election_rows()


class TestDemographicRows:

    def test_join_for_year(self, add_county):
        add_county('17031', 'Cook County', 'Illinois', 'IL', {}, demographics={
            2020: {'population': 5000000, 'median_household_income': 70000},
            2016: {'population': 4900000},
        })
        add_county('48201', 'Harris County', 'Texas', 'TX', {}, demographics={
            2020: {'population': 4700000, 'poverty_rate': 16.4},
        })

        rows = queries.get_county_demographic_rows(2020)
        assert [r['fips_code'] for r in rows] == ['17031', '48201']
        assert rows[0]['median_household_income'] == 70000
        assert rows[0]['poverty_rate'] is None

        rows = queries.get_county_demographic_rows(2020, 'TX')
        assert len(rows) == 1
        assert rows[0]['poverty_rate'] == 16.4

    def test_history_newest_first(self, add_county):
        add_county('17031', 'Cook County', 'Illinois', 'IL', {}, demographics={
            year: {'population': year} for year in range(2010, 2022)
        })
        history = queries.get_county_demographic_history('17031')
        assert [h['data_year'] for h in history] == [2021, 2020, 2019, 2018, 2017]


class TestCounties:

    def test_sorted_by_state_then_name(self, add_county):
        add_county('48201', 'Harris County', 'Texas', 'TX', {})
        add_county('17043', 'DuPage County', 'Illinois', 'IL', {})
        add_county('17031', 'Cook County', 'Illinois', 'IL', {})

        names = [c['county_name'] for c in queries.get_all_counties()]
        assert names == ['Cook County', 'DuPage County', 'Harris County']

    def test_get_county(self, add_county):
        add_county('17031', 'Cook County', 'Illinois', 'IL', {2024: {'D': 1, 'R': 1, 'O': 0, 'T': 2}})
        county = queries.get_county('17031')
        assert county['state_abbr'] == 'IL'
        assert county['election_data'] == {'2024': {'D': 1, 'R': 1, 'O': 0, 'T': 2}}
        assert queries.get_county('00000') is None

    def test_upsert_keeps_existing_geometry(self, add_county):
        add_county('17031', 'Cook County', 'Illinois', 'IL', {}, geometry=SQUARE)
        conn = queries.get_connection()
        queries.upsert_county(conn, '17031', 'Cook County', 'Illinois', 'IL')
        conn.commit()
        conn.close()

        features = queries.get_county_geojson()['features']
        assert features[0]['geometry'] == SQUARE


class TestGeoJson:

    def test_feature_collection(self, add_county):
        add_county('17031', 'Cook County', 'Illinois', 'IL', {}, geometry=SQUARE)
        add_county('48201', 'Harris County', 'Texas', 'TX', {})

        geojson = queries.get_county_geojson()
        assert geojson['type'] == 'FeatureCollection'
        assert len(geojson['features']) == 1
        assert geojson['features'][0]['properties'] == {'GEOID': '17031', 'NAME': 'Cook County', 'STATE': 'IL'}

        assert queries.get_county_geojson('TX') == {'type': 'FeatureCollection', 'features': []}


def test_db_stats(add_county):
    add_county('17031', 'Cook County', 'Illinois', 'IL', {}, demographics={2020: {'population': 1}})
    assert queries.get_db_stats() == {
        'counties': 1,
        'county_election_results': 1,
        'county_demographics': 1,
    }
