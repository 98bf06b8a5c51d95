#!/usr/bin/env python3
"""
Campaign Mapping API
Election swing analysis, county demographics and message approvals
"""

import logging

from flask import Flask, Response, jsonify, request

import analysis
import census
import config
import queries

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.secret_key = config.SECRET_KEY

# Set up Flask-Login
from auth import auth_bp, login_manager
from admin import admin_bp
from messages import messages_bp

login_manager.init_app(app)

# Register blueprints
app.register_blueprint(auth_bp)
app.register_blueprint(admin_bp)
app.register_blueprint(messages_bp)


def json_response(payload):
    """Send an already-serialized JSON payload unchanged."""
    return Response(payload, mimetype='application/json')


@app.errorhandler(analysis.ValidationError)
def handle_validation_error(e):
    return jsonify({'error': str(e)}), 400


@app.errorhandler(queries.DataRetrievalError)
def handle_retrieval_error(e):
    logger.error(f"Data retrieval failed on {request.path}: {e}")
    return jsonify({'error': 'Failed to load data'}), 500


@app.route('/health')
def health():
    return jsonify({'status': 'ok'})


# ============== MAPPING API ==============

@app.route('/api/mapping/swing-analysis')
def swing_analysis():
    """County swing between two presidential elections."""
    from_year = analysis.parse_year(request.args.get('fromYear'), 2020)
    to_year = analysis.parse_year(request.args.get('toYear'), 2024)
    state = request.args.get('state') or None

    try:
        payload = analysis.get_swing_analysis(from_year, to_year, state)
    except queries.DataRetrievalError:
        logger.exception("Swing analysis error")
        return jsonify({'error': 'Failed to calculate swing analysis'}), 500

    return json_response(payload)


@app.route('/api/mapping/demographics')
def demographics():
    """County demographic snapshot for a data year."""
    year = analysis.parse_year(request.args.get('year'), 2020)
    state = request.args.get('state') or None

    try:
        payload = census.get_demographics(year, state)
    except queries.DataRetrievalError:
        logger.exception("Demographics error")
        return jsonify({'error': 'Failed to load demographic data'}), 500

    return json_response(payload)


@app.route('/api/mapping/counties')
def counties():
    """County reference list."""
    state = analysis.normalize_state(request.args.get('state'))
    return jsonify({'counties': queries.get_all_counties(state)})


@app.route('/api/mapping/county-results/<fips>')
def county_results(fips):
    """Historical results and patterns for one county."""
    history = analysis.get_county_history(fips)
    if not history:
        return jsonify({'error': 'County not found'}), 404
    return jsonify(history)


@app.route('/api/mapping/elections')
def elections():
    """Election years available for mapping."""
    return jsonify({'elections': analysis.get_election_years()})


if __name__ == '__main__':
    queries.init_db()
    app.run(debug=True, port=5001)
