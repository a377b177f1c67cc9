"""
Orbital Tracker Service

Flask service behind the satellite tracker and space-weather dashboards:
CelesTrak proxying, parsed satellite catalogs, SGP4 positions and NOAA
space-weather telemetry.
"""

from datetime import datetime, timezone
import atexit
import traceback

from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from config import ServiceConfig
from logging_config import get_logger
from orbital_tracker import __version__
from orbital_tracker.cache import FeedCache
from orbital_tracker.catalog import Category, list_categories
from orbital_tracker.celestrak import CelestrakClient
from orbital_tracker.exceptions import FeedError, InvalidTimestampError, UnknownCategoryError
from orbital_tracker.frames import datetime_to_jd_fr, parse_timestamp
from orbital_tracker.propagator import SatellitePropagator
from orbital_tracker.space_weather import SpaceWeatherClient

logger = get_logger(__name__)


def _now():
    return datetime.now(timezone.utc)


def create_app(config=None, celestrak=None, weather=None, cache=None,
               propagator=None) -> Flask:
    """
    Build the Flask application.

    Collaborators default to live clients built from ``config``; tests pass
    their own. Clients built here live as long as the process and are
    closed at interpreter exit; passed-in clients stay owned by the caller.
    """
    config = config or ServiceConfig()
    if cache is None:
        cache = FeedCache(config.REDIS_URL)
    if celestrak is None:
        celestrak = CelestrakClient(config, cache=cache)
        atexit.register(celestrak.close)
    if weather is None:
        weather = SpaceWeatherClient(config, cache=cache)
        atexit.register(weather.close)
    propagator = propagator or SatellitePropagator()

    app = Flask(__name__)
    CORS(app)

    app.extensions["orbital_tracker"] = {
        "config": config,
        "cache": cache,
        "celestrak": celestrak,
        "weather": weather,
        "propagator": propagator,
    }

    def load_category(name):
        category = Category.resolve(name, strict=True)
        return category, celestrak.fetch_satellites(category)

    @app.route('/health', methods=['GET'])
    def health_check():
        """Service health and configuration"""
        return jsonify({
            "status": "healthy",
            "timestamp": _now().isoformat(),
            "version": __version__,
            "services": {
                "cache": "healthy" if cache.ping() else "disabled",
            },
            "configuration": config.as_dict(),
        }), 200

    @app.route('/api/satellites', methods=['GET'])
    def celestrak_proxy():
        """Forward a raw GP query to CelesTrak"""
        group = request.args.get('group')
        fmt = request.args.get('format')

        if not group or not fmt:
            return jsonify({"error": "Missing required query parameters: group and format"}), 400

        return jsonify(celestrak.fetch_gp(group, fmt))

    @app.route('/api/satellites/categories', methods=['GET'])
    def get_categories():
        return jsonify({"categories": list_categories()})

    @app.route('/api/satellites/<category>', methods=['GET'])
    def get_satellites(category):
        """Parsed satellite records of a category"""
        limit = min(request.args.get('limit', config.MAX_SATELLITES, type=int), config.MAX_SATELLITES)
        category, satellites = load_category(category)
        satellites = satellites[:max(limit, 0)]

        return jsonify({
            "category": category.value,
            "description": category.description,
            "satellites": [sat.model_dump() for sat in satellites],
            "count": len(satellites),
            "timestamp": _now().isoformat(),
        })

    @app.route('/api/satellites/<category>/positions', methods=['GET'])
    def get_positions(category):
        """Positions of every satellite of a category at one instant"""
        timestamp = parse_timestamp(request.args.get('timestamp'))
        category, satellites = load_category(category)
        satellites = satellites[:config.MAX_SATELLITES]

        batch = propagator.propagate_batch(satellites, timestamp)
        scene = batch.scene_positions()

        positions = []
        for i, sat in enumerate(satellites):
            if not batch.valid[i]:
                continue
            entry = batch.sample(i).model_dump()
            entry.update({
                "id": sat.id,
                "norad_id": sat.norad_id,
                "name": sat.name,
                "scene": [float(c) for c in scene[i]],
            })
            positions.append(entry)

        return jsonify({
            "category": category.value,
            "timestamp": timestamp.isoformat(),
            "positions": positions,
            "count": len(positions),
            "failed": batch.failed_count,
        })

    @app.route('/api/satellites/<category>/<int:norad_id>', methods=['GET'])
    def get_satellite(category, norad_id):
        """One satellite: metadata, elements and current position"""
        timestamp = parse_timestamp(request.args.get('timestamp'))
        category, satellites = load_category(category)

        record = next((sat for sat in satellites if sat.norad_id == norad_id), None)
        if record is None:
            return jsonify({"error": "Satellite not found"}), 404

        error_code, _, _ = record.satrec.sgp4(*datetime_to_jd_fr(timestamp))
        payload = {
            "satellite": record.model_dump(),
            "elements": propagator.orbital_elements(record).model_dump(mode="json"),
            "position": propagator.propagate(record, timestamp).model_dump(),
            "timestamp": timestamp.isoformat(),
        }
        if error_code != 0:
            payload["error_diagnostics"] = propagator.error_diagnostics(record, error_code, timestamp)
        return jsonify(payload)

    @app.route('/api/weather', methods=['GET'])
    def get_weather():
        """Current space weather with recent series"""
        try:
            return jsonify(weather.current())
        except (FeedError, ValueError) as e:
            logger.error(f"Weather API Error: {e}")
            return jsonify({"error": "Failed to fetch space weather"}), 500

    @app.route('/api/weather/history', methods=['GET'])
    def get_weather_history():
        try:
            return jsonify(weather.history())
        except (FeedError, ValueError) as e:
            logger.error(f"History API Error: {e}")
            return jsonify({"error": "Failed to fetch history"}), 500

    @app.errorhandler(UnknownCategoryError)
    def handle_unknown_category(error):
        return jsonify({
            "error": str(error),
            "categories": [c.value for c in Category],
        }), 404

    @app.errorhandler(InvalidTimestampError)
    def handle_bad_timestamp(error):
        return jsonify({"error": str(error)}), 400

    @app.errorhandler(FeedError)
    def handle_feed_error(error):
        logger.error(f"Upstream feed failed: {error}")
        return jsonify({"error": error.message, "source": error.source}), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({"error": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_error(error):
        """Global error handler"""
        logger.error(f"Unhandled error: {error}\n{traceback.format_exc()}")
        return jsonify({
            "error": "Internal server error",
            "timestamp": _now().isoformat(),
        }), 500

    return app


if __name__ == '__main__':
    config = ServiceConfig()
    logger.info("Starting Orbital Tracker service")
    create_app(config).run(host=config.HOST, port=config.PORT, debug=False)
