from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from shopzify.services import wishlist_service
from shopzify.utils.auth_utils import resolve_user_id
from shopzify.utils.validators import validate_json

wishlist_bp = Blueprint('wishlist_bp', __name__)


@wishlist_bp.route('/wishlist/toggle', methods=['POST'])
@jwt_required()
@validate_json(['product'])
def toggle_wishlist():
    data = request.get_json()
    product_id = wishlist_service.resolve_product_id(data.get('product'), bool(data.get('isWishList')))

    action = wishlist_service.toggle_wishlist(resolve_user_id(), product_id)
    return jsonify({'message': wishlist_service.MESSAGES[action]}), 200


@wishlist_bp.route('/wishlists', methods=['GET'])
@jwt_required()
def get_wishlists():
    wishlist = wishlist_service.get_wishlist(resolve_user_id())
    return jsonify({'wishlist': wishlist.to_dict()}), 200
