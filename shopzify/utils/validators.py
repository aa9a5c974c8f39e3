import re
from flask import request, jsonify
from functools import wraps

from shopzify.utils.errors import ValidationError

EMAIL_RE = re.compile(r'^[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}$', re.IGNORECASE)
MIN_PASSWORD_LENGTH = 8


def validate_json(required_fields):
    """
    Middleware to validate JSON request body for required fields.
    Ensures that the request body is JSON and contains all required fields.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            data = request.get_json(silent=True)
            if not isinstance(data, dict):
                return jsonify({'message': 'Request body must be JSON'}), 400

            missing_fields = [field for field in required_fields if field not in data]

            if missing_fields:
                return jsonify({'message': f'Missing required fields: {", ".join(missing_fields)}'}), 400

            return func(*args, **kwargs)
        return wrapper
    return decorator


def validate_credentials(email, password):
    """Raise ValidationError unless email looks like an address and the password is long enough."""
    if not email:
        raise ValidationError('Email is required')
    if not EMAIL_RE.match(email):
        raise ValidationError('Email is invalid', 'Please enter a valid email address')
    if not password:
        raise ValidationError('Password is required')
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f'Password must be {MIN_PASSWORD_LENGTH} characters long')
