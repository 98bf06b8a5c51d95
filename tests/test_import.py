"""Tests for CSV / GeoJSON import and the sample seeder."""

import json

import pytest

import analysis
import import_election_data as importer
import queries
import seed_election_data


def write(path, text):
    path.write_text(text.strip() + "\n")
    return path


class TestHelpers:

    @pytest.mark.parametrize('raw,expected', [
        ('17031', '17031'),
        ('6037', '06037'),
        ('0500000US17031', '17031'),
        ('6037.0', '06037'),
        ('', None),
        (None, None),
    ])
    def test_normalize_fips(self, raw, expected):
        assert importer.normalize_fips(raw) == expected

    def test_safe_votes(self):
        assert importer.safe_votes('1200') == 1200
        assert importer.safe_votes('1200.0') == 1200
        assert importer.safe_votes('') == 0
        assert importer.safe_votes('-5') == 0

    def test_polygon_centroid(self):
        lat, lng = importer.polygon_centroid([[[0, 0], [0, 2], [2, 2], [2, 0]]])
        assert (lat, lng) == (1.0, 1.0)
        assert importer.polygon_centroid([]) == (None, None)


class TestLoadElectionCsv:

    def test_long_format(self, tmp_path):
        path = write(tmp_path / "long.csv", """
county_fips,county_name,state_abbr,state_name,year,democratic_votes,republican_votes,other_votes,total_votes
17031,Cook County,IL,Illinois,2020,1725891,738227,45987,2510105
17031,Cook County,IL,Illinois,2024,1650234,801456,52310,2504000
6037,Los Angeles County,CA,California,2024,2417109,1189862,100000,3706971
""")
        counties = importer.load_election_csv(path)

        assert set(counties) == {'17031', '06037'}
        cook = counties['17031']
        assert cook['county_name'] == 'Cook County'
        assert cook['state_abbr'] == 'IL'
        assert cook['elections'][2020] == {'D': 1725891, 'R': 738227, 'O': 45987, 'T': 2510105}
        assert sorted(cook['elections']) == [2020, 2024]

    def test_wide_format_with_geo_column(self, tmp_path):
        path = write(tmp_path / "wide.csv", """
fips,geo,2020_D,2020_R,2020_O,2020_T,2024_D,2024_R,2024_O,2024_T
0500000US48201,"Harris County, Texas",918193,700630,19000,1637823,,,,
""")
        counties = importer.load_election_csv(path)

        harris = counties['48201']
        assert harris['county_name'] == 'Harris County'
        assert harris['state_name'] == 'Texas'
        assert harris['state_abbr'] == 'TX'
        assert harris['elections'][2020]['T'] == 1637823
        assert harris['elections'][2024] == {'D': 0, 'R': 0, 'O': 0, 'T': 0}

    def test_state_data_gaps_dropped(self, tmp_path):
        path = write(tmp_path / "wide.csv", """
fips,county_name,state_abbr,1904_D,1904_R,1904_O,1904_T,1912_D,1912_R,1912_O,1912_T
28049,Hinds County,MS,10,1,0,11,12,1,0,13
""")
        hinds = importer.load_election_csv(path)['28049']
        assert sorted(hinds['elections']) == [1912]
        assert hinds['state_name'] == 'Mississippi'

    def test_non_election_year_dropped(self, tmp_path):
        path = write(tmp_path / "long.csv", """
county_fips,county_name,state_abbr,state_name,year,democratic_votes,republican_votes,other_votes,total_votes
17031,Cook County,IL,Illinois,2022,1,1,0,2
""")
        assert importer.load_election_csv(path)['17031']['elections'] == {}

    def test_short_total_is_raised(self, tmp_path):
        path = write(tmp_path / "wide.csv", """
fips,county_name,state_abbr,2020_D,2020_R,2020_O,2020_T,2024_D,2024_R,2024_O,2024_T
17031,Cook County,IL,100,10,5,50,10,100,0,110
""")
        elections = importer.load_election_csv(path)['17031']['elections']
        assert elections[2020] == {'D': 100, 'R': 10, 'O': 5, 'T': 115}
        assert elections[2024]['T'] == 110


class TestLoadDemographicsCsv:

    def test_float_years_and_bad_rows(self, tmp_path):
        path = write(tmp_path / "demographics.csv", """
county_fips,year,population
17031,2020.0,5000
48201,soon,4700000
,2020,12
""")
        records, skipped = importer.load_demographics_csv(path)

        assert [(fips, year) for fips, year, _ in records] == [('17031', 2020)]
        assert records[0][2]['population'] == 5000
        assert skipped == 2


class TestImportElectionData:

    def test_full_import(self, tmp_path, db_path, fresh_cache):
        write(tmp_path / "county_election_results.csv", """
county_fips,county_name,state_abbr,state_name,year,democratic_votes,republican_votes,other_votes,total_votes
17031,Cook County,IL,Illinois,2020,40000,60000,0,100000
17031,Cook County,IL,Illinois,2024,55000,45000,0,100000
""")
        (tmp_path / "county_boundaries.geojson").write_text(json.dumps({
            'type': 'FeatureCollection',
            'features': [{
                'type': 'Feature',
                'properties': {'GEOID': '17031'},
                'geometry': {'type': 'Polygon', 'coordinates': [[[-88, 41], [-87, 41], [-87, 42], [-88, 42]]]},
            }],
        }))
        write(tmp_path / "county_demographics.csv", """
county_fips,year,population,median_household_income,poverty_rate
17031,2020,5150233,68428,13.1
""")

        assert importer.import_election_data(tmp_path) == (1, 0)

        county = queries.get_county('17031')
        assert county['centroid_lat'] == pytest.approx(41.5)
        assert county['centroid_lng'] == pytest.approx(-87.5)

        payload = json.loads(analysis.get_swing_analysis(2020, 2024))
        assert payload['counties'][0]['swing'] == pytest.approx(30.0)
        assert len(payload['geoJson']['features']) == 1

        demographics = queries.get_county_demographic_rows(2020)
        assert demographics[0]['population'] == 5150233
        assert demographics[0]['poverty_rate'] == 13.1

    def test_missing_file(self, tmp_path, db_path):
        assert importer.import_election_data(tmp_path) == (0, 0)


def test_seed_is_repeatable(db_path):
    assert seed_election_data.seed_election_data(seed=7) == 5
    first = queries.get_county_election_rows()
    seed_election_data.seed_election_data(seed=7)
    assert queries.get_county_election_rows() == first

    for row in first:
        assert set(row['election_data']) == {str(y) for y in analysis.MODERN_ELECTION_YEARS}
        for data in row['election_data'].values():
            assert data['T'] >= data['D'] + data['R']


def test_inconsistent_totals_never_produce_impossible_swings(tmp_path, db_path, fresh_cache):
    write(tmp_path / "county_election_results.csv", """
fips,county_name,state_abbr,2020_D,2020_R,2020_O,2020_T,2024_D,2024_R,2024_O,2024_T
17031,Cook County,IL,100,10,0,50,10,100,0,50
""")
    assert importer.import_election_data(tmp_path) == (1, 0)

    stored = queries.get_county_election_rows()[0]['election_data']
    assert stored['2020']['T'] == 110

    payload = json.loads(analysis.get_swing_analysis(2020, 2024))
    assert payload['counties'][0]['swing'] == pytest.approx(-163.6363636)
