"""
Controllers for the user account API.

Each controller returns response data, a status code and headers. Failures
that the client should see are raised as :mod:`werkzeug.exceptions`, with
generic descriptions: directory error text never reaches the client.
"""

import logging
from http import HTTPStatus as status
from typing import Any, Dict, Tuple

from werkzeug.datastructures import MultiDict
from werkzeug.exceptions import BadRequest, Conflict, InternalServerError, \
    NotFound, ServiceUnavailable
from wtforms import Form, PasswordField, StringField
from wtforms.validators import DataRequired, InputRequired, Length, Regexp

from .. import exceptions
from ..gateway import USERNAME_PATTERN, current_gateway

logger = logging.getLogger(__name__)

ResponseData = Tuple[Any, int, dict]

OK = {'msg': 'OK', 'status': 0}
NOT_IMPLEMENTED = {'msg': 'Not implemented yet', 'status': 99}


class CreateUserForm(Form):
    """New account request."""

    first_name = StringField('First name',
                             validators=[DataRequired(), Length(max=64)])
    surname = StringField('Surname',
                          validators=[DataRequired(), Length(max=64)])
    username = StringField('Username',
                           validators=[DataRequired(),
                                       Regexp(USERNAME_PATTERN)])
    password = PasswordField('Password', validators=[InputRequired()])

    @classmethod
    def from_json(cls, payload: Dict[str, Any]) -> 'CreateUserForm':
        """Build the form from a JSON body using the API's field names."""
        return cls(_form_data(payload, first_name='firstName',
                              surname='surname', username='username',
                              password='password'))


class AuthenticateForm(Form):
    """Credentials to check."""

    username = StringField('Username', validators=[DataRequired()])
    password = PasswordField('Password', validators=[InputRequired()])

    @classmethod
    def from_json(cls, payload: Dict[str, Any]) -> 'AuthenticateForm':
        """Build the form from a JSON body using the API's field names."""
        return cls(_form_data(payload, username='username',
                              password='password'))


def _form_data(payload: Any, **fields: str) -> MultiDict:
    if not isinstance(payload, dict):
        payload = {}
    data = {}
    for field, key in fields.items():
        value = payload.get(key)
        data[field] = value if isinstance(value, str) else ''
    return MultiDict(data)


def list_users() -> ResponseData:
    """Handle requests for the list of accounts."""
    logger.debug('List users')
    try:
        accounts = current_gateway().list_users()
    except exceptions.DirectoryError as e:
        logger.error('Could not list users: %s', e.kind.value)
        raise ServiceUnavailable('Directory unavailable') from e
    except ValueError as e:
        logger.error('Could not list users: %s', e)
        raise InternalServerError('Search result error') from e
    return [account.summary() for account in accounts], status.OK, {}


def create_user(payload: Any) -> ResponseData:
    """
    Handle requests to create an account.

    Parameters
    ----------
    payload : dict
        Should include ``firstName``, ``surname``, ``username`` and
        ``password``.

    Returns
    -------
    dict
        Response body.
    int
        Status code; 200 if the account and its group were created.
    dict
        Headers to add to the response.

    """
    logger.debug('Create user')
    form = CreateUserForm.from_json(payload)
    if not form.validate():
        logger.debug('Create user input is not valid: %s', list(form.errors))
        raise BadRequest('Input error')

    try:
        current_gateway().create_user(form.first_name.data, form.surname.data,
                                      form.username.data, form.password.data)
    except exceptions.ValidationError as e:
        raise BadRequest('Input error') from e
    except exceptions.NameUnavailable as e:
        raise Conflict('Username not available') from e
    except (exceptions.AllocationExhausted,
            exceptions.DirectoryUnavailable) as e:
        raise ServiceUnavailable('Try again later') from e
    except exceptions.GatewayError as e:
        logger.error('Could not create user %s: %s', form.username.data,
                     type(e).__name__)
        raise InternalServerError('Could not create user') from e
    return OK, status.OK, {}


def get_user(username: str) -> ResponseData:
    """Handle requests for a single account."""
    logger.debug('Get user: %s', username)
    try:
        account = current_gateway().get_user(username)
    except exceptions.NotFound as e:
        raise NotFound('No such user') from e
    except exceptions.DirectoryError as e:
        logger.error('Could not get user %s: %s', username, e.kind.value)
        raise ServiceUnavailable('Directory unavailable') from e
    except (exceptions.AmbiguousResult, ValueError) as e:
        logger.error('Bad search result for %s: %s', username, e)
        raise InternalServerError('Search result error') from e
    return account.details(), status.OK, {}


def update_user(username: str) -> ResponseData:
    """Handle requests to change an account; not supported."""
    logger.debug('Update user: %s', username)
    return NOT_IMPLEMENTED, status.NOT_IMPLEMENTED, {}


def authenticate(payload: Any) -> ResponseData:
    """
    Handle requests to check a username and password.

    A wrong password and an unknown user get the same response.
    """
    form = AuthenticateForm.from_json(payload)
    if not form.validate():
        raise BadRequest('Input error')
    if not current_gateway().authenticate(form.username.data,
                                          form.password.data):
        logger.debug('Authentication failed for %s', form.username.data)
        return {}, status.FORBIDDEN, {}
    return OK, status.OK, {}
