"""Provides Flask integration for the account API."""

from flask import Blueprint, Response, jsonify, make_response, request

from .controllers import users

blueprint = Blueprint('api', __name__, url_prefix='/api')


def _respond(data: object, code: int, headers: dict) -> Response:
    response: Response = make_response(jsonify(data), code, headers)
    return response


@blueprint.route('/users', methods=['GET'])
def list_users() -> Response:
    """List all accounts."""
    return _respond(*users.list_users())


@blueprint.route('/users', methods=['POST'])
def create_user() -> Response:
    """Create an account and its group."""
    return _respond(*users.create_user(request.get_json(silent=True)))


@blueprint.route('/users/<username>', methods=['GET'])
def get_user(username: str) -> Response:
    """Get a single account."""
    return _respond(*users.get_user(username))


@blueprint.route('/users/<username>', methods=['PUT'])
def update_user(username: str) -> Response:
    """Change an account (not supported)."""
    return _respond(*users.update_user(username))


@blueprint.route('/authenticate', methods=['POST'])
def authenticate() -> Response:
    """Check a username and password."""
    return _respond(*users.authenticate(request.get_json(silent=True)))
