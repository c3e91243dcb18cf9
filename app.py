from flask import Flask, jsonify
from flask_jwt_extended import JWTManager
from flask_cors import CORS
import logging
import os

from config import settings
from config.database import SessionLocal
from config.logging_config import configure_logging

configure_logging()
logger = logging.getLogger(__name__)

# ----------------------------------------------------------------------
# App + CORS
# ----------------------------------------------------------------------
app = Flask(__name__)
CORS(app, origins=settings.CORS_ORIGINS)

# JWT setup (env-driven secret)
app.config.setdefault("JWT_SECRET_KEY", settings.JWT_SECRET_KEY)
jwt = JWTManager(app)

# Dev secret for debug endpoints
app.config.setdefault("DEBUG_SECRET", settings.DEBUG_SECRET)

# ----------------------------------------------------------------------
# Register blueprints
# ----------------------------------------------------------------------
from routes.dev_routes import dev_routes
from routes.options_routes import options_bp
from routes.property_routes import property_bp

app.register_blueprint(dev_routes)
app.register_blueprint(options_bp)
app.register_blueprint(property_bp)


# ----------------------------------------------------------------------
# Basic routes / health
# ----------------------------------------------------------------------
@app.route('/')
def hello():
    return "Flask server running!"


@app.route("/healthz", methods=["GET"])
def healthz():
    return jsonify({"status": "ok"}), 200


# Always release DB sessions back to the pool
@app.teardown_appcontext
def remove_session(exception=None):
    SessionLocal.remove()


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    logger.info("Starting on port %d", port)
    app.run(host='0.0.0.0', port=port, debug=False)
