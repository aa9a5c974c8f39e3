from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, unset_jwt_cookies
from shopzify import limiter
from shopzify.models import db, User
from shopzify.utils.validators import validate_json, validate_credentials
from shopzify.utils.auth_utils import resolve_user_id, token_response
from shopzify.utils.errors import Conflict, Unauthorized

auth_bp = Blueprint('auth_bp', __name__)


# --- SIGNUP ---
@auth_bp.route('/signup', methods=['POST'])
@limiter.limit("5 per minute")
@validate_json(['email', 'password'])
def signup():
    data = request.get_json()
    email = (data.get('email') or '').lower().strip()
    password = data.get('password') or ''
    name = (data.get('name') or '').strip() or None

    validate_credentials(email, password)

    # Prevent duplicate accounts
    if User.query.filter_by(email=email).first():
        raise Conflict('User already exists', 'Please login instead')

    user = User(name=name, email=email)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()

    current_app.logger.info('Registered user %s', user.user_id)
    return jsonify({'message': 'User registered successfully', 'subMessage': 'Please login to continue'}), 201


# --- LOGIN ---
@auth_bp.route('/login', methods=['POST'])
@limiter.limit("10 per minute")
@validate_json(['email', 'password'])
def login():
    data = request.get_json()
    email = (data.get('email') or '').lower().strip()
    password = data.get('password') or ''

    validate_credentials(email, password)

    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(password):
        current_app.logger.info('Failed login for %s', email)
        raise Unauthorized('Invalid credentials', 'Please check your email and password')

    return token_response(user)


# --- REFRESH ---
@auth_bp.route('/refresh', methods=['POST'])
@jwt_required(refresh=True, locations=['cookies'])
def refresh():
    # Rotate: every refresh hands out a new refresh cookie alongside the access token
    user = db.session.get(User, resolve_user_id())
    if not user:
        raise Unauthorized('User not found', 'Please login again')
    return token_response(user)


# --- LOGOUT ---
@auth_bp.route('/logout', methods=['POST'])
def logout():
    response = jsonify({'message': 'Logged out successfully'})
    unset_jwt_cookies(response)
    return response, 200
