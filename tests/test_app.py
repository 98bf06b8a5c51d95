"""Route tests for the mapping API."""

from unittest.mock import patch

import pytest

import queries


def result(d, r, o=0):
    return {'D': d, 'R': r, 'O': o, 'T': d + r + o}


@pytest.fixture
def counties(add_county):
    add_county('17031', 'Cook County', 'Illinois', 'IL',
               {2016: result(60, 40), 2020: result(40000, 60000), 2024: result(55000, 45000)},
               demographics={2020: {'population': 5000000, 'median_household_income': 70000}})
    add_county('48201', 'Harris County', 'Texas', 'TX',
               {2020: result(500, 500), 2024: result(400, 600)},
               demographics={2020: {'population': 4700000, 'median_household_income': 60000}})


class TestSwingAnalysisRoute:

    def test_defaults_to_2020_2024(self, client, counties):
        response = client.get('/api/mapping/swing-analysis')

        assert response.status_code == 200
        data = response.get_json()
        assert data['summary']['totalCounties'] == 2
        assert data['summary']['democraticGains'] == 1
        assert data['summary']['republicanGains'] == 1
        cook = next(c for c in data['counties'] if c['fipsCode'] == '17031')
        assert cook['swing'] == pytest.approx(30.0)

    def test_state_filter(self, client, counties):
        response = client.get('/api/mapping/swing-analysis?fromYear=2016&toYear=2024&state=IL')
        data = response.get_json()
        assert [c['fipsCode'] for c in data['counties']] == ['17031']

    def test_repeat_request_is_byte_identical(self, client, counties):
        first = client.get('/api/mapping/swing-analysis?state=TX')
        with patch.object(queries, 'get_county_election_rows') as loader:
            second = client.get('/api/mapping/swing-analysis?state=TX')
        loader.assert_not_called()
        assert second.data == first.data

    @pytest.mark.parametrize('query', [
        'fromYear=1961&toYear=2024',
        'fromYear=2020&toYear=2025',
        'fromYear=abc',
        'state=ZZ',
    ])
    def test_validation_errors(self, client, counties, query):
        with patch.object(queries, 'get_county_election_rows') as loader:
            response = client.get(f'/api/mapping/swing-analysis?{query}')
        assert response.status_code == 400
        assert 'error' in response.get_json()
        loader.assert_not_called()

    def test_store_failure(self, client):
        with patch.object(queries, 'get_county_election_rows',
                          side_effect=queries.DataRetrievalError("disk I/O error")):
            response = client.get('/api/mapping/swing-analysis')
        assert response.status_code == 500
        assert response.get_json() == {'error': 'Failed to calculate swing analysis'}


class TestDemographicsRoute:

    def test_demographics(self, client, counties):
        response = client.get('/api/mapping/demographics?year=2020')
        data = response.get_json()
        assert response.status_code == 200
        assert data['summary']['totalCounties'] == 2
        assert data['summary']['averageIncome'] == 65000
        assert data['geoJson']['type'] == 'FeatureCollection'

    def test_no_snapshot_for_year(self, client, counties):
        data = client.get('/api/mapping/demographics?year=2010').get_json()
        assert data['counties'] == []
        assert data['summary']['medianIncome'] is None

    def test_bad_year(self, client):
        assert client.get('/api/mapping/demographics?year=soon').status_code == 400


class TestCountyRoutes:

    def test_counties(self, client, counties):
        data = client.get('/api/mapping/counties').get_json()
        assert [c['fips_code'] for c in data['counties']] == ['17031', '48201']

        data = client.get('/api/mapping/counties?state=tx').get_json()
        assert [c['fips_code'] for c in data['counties']] == ['48201']

    def test_county_results(self, client, counties):
        response = client.get('/api/mapping/county-results/17031')
        data = response.get_json()
        assert response.status_code == 200
        assert [r['year'] for r in data['historicalResults']] == [2016, 2020, 2024]
        assert data['demographics'][0]['data_year'] == 2020

    def test_unknown_county(self, client, counties):
        response = client.get('/api/mapping/county-results/99999')
        assert response.status_code == 404

    def test_store_failure_on_county_list(self, client):
        with patch.object(queries, 'get_all_counties', side_effect=queries.DataRetrievalError("locked")):
            response = client.get('/api/mapping/counties')
        assert response.status_code == 500


def test_elections(client):
    data = client.get('/api/mapping/elections').get_json()
    assert len(data['elections']) == 17
    assert data['elections'][0]['year'] == 2024


def test_health(client):
    assert client.get('/health').get_json() == {'status': 'ok'}
