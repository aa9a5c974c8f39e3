from flask import jsonify
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    get_jwt_identity,
    set_refresh_cookies,
)


def resolve_user_id():
    """Return JWT identity coerced to int when possible to match DB types."""
    uid = get_jwt_identity()
    try:
        return int(uid)
    except (TypeError, ValueError):
        return uid


def token_response(user, status=200):
    """Issue a fresh access/refresh pair for ``user``.

    The access token goes in the body; the refresh token is only ever sent
    back as an HTTP-only cookie.
    """
    identity = str(user.user_id)
    access_token = create_access_token(identity=identity)
    refresh_token = create_refresh_token(identity=identity)

    response = jsonify({'accessToken': access_token})
    set_refresh_cookies(response, refresh_token)
    return response, status
