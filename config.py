"""
Runtime settings for the campaign mapping service.
Everything can be overridden from the environment.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).parent

DB_PATH = Path(os.environ.get('CAMPAIGN_DB_PATH', BASE_DIR / "campaign.db"))

SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')

LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

# Mapping responses are cached for 15 minutes
CACHE_TTL_SECONDS = int(os.environ.get('CACHE_TTL_SECONDS', '900'))
CACHE_MAX_ENTRIES = int(os.environ.get('CACHE_MAX_ENTRIES', '512'))
SKIP_CACHE = os.environ.get('SKIP_CACHE', '').lower() == 'true'

# Census API (ACS 5-year estimates)
CENSUS_API = os.environ.get('CENSUS_API', "https://api.census.gov/data/{year}/acs/acs5")
CENSUS_API_KEY = os.environ.get('CENSUS_API_KEY')

ELECTION_DATA_DIR = Path(os.environ.get('ELECTION_DATA_DIR', BASE_DIR / "data" / "elections"))
