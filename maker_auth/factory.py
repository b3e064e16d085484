"""Provides an app factory for the identity gateway."""

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from . import gateway, routes
from .app_logging import setup_logger


def jsonify_exception(error: HTTPException):
    exc_resp = error.get_response()
    response = jsonify(reason=error.description)
    response.status_code = exc_resp.status_code
    return response


def create_app() -> Flask:
    """Initialize an instance of the identity gateway."""
    app = Flask('maker_auth')
    app.config.from_pyfile('config.py')
    setup_logger(app.config['LOG_LEVEL'], app.config['LOG_JSON'] == '1')

    gateway.init_app(app)

    app.register_blueprint(routes.blueprint)
    app.errorhandler(HTTPException)(jsonify_exception)
    return app
