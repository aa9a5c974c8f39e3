from flask import Blueprint, jsonify, request, current_app
from flask_jwt_extended import jwt_required
from shopzify.models import db, Cart, CartItem, Product
from shopzify.utils.auth_utils import resolve_user_id
from shopzify.utils.errors import NotFound, ValidationError
from shopzify.utils.validators import validate_json

cart_bp = Blueprint('cart_bp', __name__)


def _product_ref(product):
    """Cart payloads come from catalog cards (``_id``) or cart rows (``productId``)."""
    if not isinstance(product, dict):
        return None
    raw = product.get('productId', product.get('_id'))
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def cart_summary(cart):
    config = current_app.config
    return cart.summary(
        tax_rate=config['CART_TAX_RATE'],
        shipping_charge=config['SHIPPING_CHARGE'],
        free_shipping_threshold=config['FREE_SHIPPING_THRESHOLD'],
    )


def get_or_create_cart(user_id):
    cart = Cart.query.filter_by(user_id=user_id).first()
    if not cart:
        cart = Cart(user_id=user_id)
        db.session.add(cart)
        db.session.flush()
    return cart


def cart_payload(cart):
    items = cart.items if cart else []
    summary = cart_summary(cart) if cart else cart_summary(Cart())
    return {"products": [item.to_dict() for item in items], "summary": summary}


# 🟢 Add Item to Cart
@cart_bp.route('/post/cart', methods=['POST'])
@jwt_required()
@validate_json(['product'])
def add_to_cart():
    user_id = resolve_user_id()
    product_data = request.get_json().get('product')
    product_id = _product_ref(product_data)
    raw_quantity = product_data.get('quantity') if isinstance(product_data, dict) else None
    try:
        quantity = int(raw_quantity) if raw_quantity is not None else 1
    except (TypeError, ValueError):
        raise ValidationError('Quantity must be a number')
    if quantity <= 0:
        raise ValidationError('Quantity must be at least 1')

    product = db.session.get(Product, product_id) if product_id is not None else None
    if not product or not product.status:
        raise NotFound('Product not found')

    cart = get_or_create_cart(user_id)
    existing_item = next((item for item in cart.items if item.product_id == product.product_id), None)
    new_quantity = quantity + (existing_item.quantity if existing_item else 0)
    if product.quantity < new_quantity:
        db.session.rollback()
        raise ValidationError('Insufficient stock', f'Only {product.quantity} left in stock')

    if existing_item:
        existing_item.quantity = new_quantity
        existing_item.price_at_time = product.discounted_price
    else:
        cart.items.append(CartItem(
            product_id=product.product_id,
            quantity=quantity,
            price_at_time=product.discounted_price,
        ))
    db.session.commit()

    return jsonify({"message": "Product added to cart"}), 200


# 🟢 Decrement / remove an item
@cart_bp.route('/remove/cart', methods=['POST'])
@jwt_required()
@validate_json(['product'])
def remove_from_cart():
    user_id = resolve_user_id()
    product_id = _product_ref(request.get_json().get('product'))

    cart = Cart.query.filter_by(user_id=user_id).first()
    item = None
    if cart and product_id is not None:
        item = next((i for i in cart.items if i.product_id == product_id), None)
    if not item:
        raise NotFound('Cart item not found')

    if item.quantity > 1:
        item.quantity -= 1
        message = "Product quantity updated"
    else:
        cart.items.remove(item)
        message = "Product removed from cart"
    db.session.commit()
    return jsonify({"message": message}), 200


# 🟢 Empty the cart
@cart_bp.route('/delete/cart', methods=['PUT'])
@jwt_required()
def remove_all_products():
    cart = Cart.query.filter_by(user_id=resolve_user_id()).first()
    if cart:
        cart.items.clear()
        db.session.commit()
    return jsonify({"message": "Cart cleared"}), 200


# 🟢 Get User Cart (JSON)
@cart_bp.route('/carts', methods=['GET'])
@jwt_required()
def get_cart():
    cart = Cart.query.filter_by(user_id=resolve_user_id()).first()
    return jsonify({"cart": cart_payload(cart)}), 200
