"""Shared fixtures: a throwaway SQLite database, a fresh cache and a test client."""

import pytest

import cache
import queries
from auth import create_user


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    """Point every query at an empty database with the full schema."""
    path = tmp_path / "campaign_test.db"
    monkeypatch.setattr(queries, 'DB_PATH', path)
    queries.init_db()
    return path


@pytest.fixture
def fresh_cache(monkeypatch):
    response_cache = cache.ResponseCache(max_entries=64, default_ttl=900)
    monkeypatch.setattr(cache, 'response_cache', response_cache)
    return response_cache


@pytest.fixture
def add_county(db_path):
    """Insert a county with its election history (and optional demographics)."""
    def _add(fips, name, state_name, state_abbr, elections, demographics=None, geometry=None):
        conn = queries.get_connection()
        queries.upsert_county(conn, fips, name, state_name, state_abbr, geometry=geometry)
        queries.upsert_county_election_result(conn, fips, name, state_abbr, state_name, elections)
        for year, values in (demographics or {}).items():
            queries.upsert_county_demographic(conn, fips, year, values)
        conn.commit()
        conn.close()
    return _add


@pytest.fixture
def client(db_path, fresh_cache):
    from app import app
    app.config['TESTING'] = True
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture
def login(client):
    """Create a user with the given role and log the test client in."""
    def _login(username='author', role='user', password='secret-pass'):
        create_user(username, password, role)
        response = client.post('/login', json={'username': username, 'password': password})
        assert response.status_code == 200
        return response.get_json()['user']
    return _login
