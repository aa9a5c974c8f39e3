from flask import jsonify, current_app
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from shopzify import db, jwt
from shopzify.utils.errors import ApiError


def _error(message, status, sub_message=None):
    payload = {'message': message}
    if sub_message:
        payload['subMessage'] = sub_message
    return jsonify(payload), status


@jwt.unauthorized_loader
def missing_token(reason):
    return _error('Unauthorized', 401, reason)


@jwt.expired_token_loader
def expired_token(jwt_header, jwt_payload):
    return _error('Token has expired', 401, 'Please login again')


@jwt.invalid_token_loader
def invalid_token(reason):
    return _error('Invalid token', 401, reason)


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api_error(err):
        if err.status_code >= 500:
            current_app.logger.error('%s: %s', err.__class__.__name__, err.message)
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(err):
        db.session.rollback()
        current_app.logger.exception('Unexpected database error')
        return _error('Something went wrong', 500)

    @app.errorhandler(HTTPException)
    def handle_http_error(err):
        return _error(err.name, err.code, err.description)
