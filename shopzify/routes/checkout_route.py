from flask import Blueprint, jsonify, request, current_app
from flask_jwt_extended import jwt_required
from shopzify.models import db, Cart, Order, OrderItem
from shopzify.routes.cart_routes import cart_summary
from shopzify.utils.auth_utils import resolve_user_id
from shopzify.utils.errors import ValidationError
from shopzify.utils.validators import validate_json

checkout_bp = Blueprint('checkout_bp', __name__)

PAYMENT_METHODS = ('cod', 'card', 'upi')


# 🟢 Place an order from the current cart
@checkout_bp.route('/post/checkout', methods=['POST'])
@jwt_required()
@validate_json(['fullName', 'phone', 'address', 'city'])
def create_checkout():
    user_id = resolve_user_id()
    data = request.get_json()

    missing = [field for field in ('fullName', 'phone', 'address', 'city') if not str(data.get(field) or '').strip()]
    if missing:
        raise ValidationError(f'Missing required fields: {", ".join(missing)}')

    payment_method = (data.get('paymentMethod') or 'cod').lower()
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError('Unsupported payment method', f'Choose one of: {", ".join(PAYMENT_METHODS)}')

    cart = Cart.query.filter_by(user_id=user_id).first()
    if not cart or not cart.items:
        raise ValidationError('Your cart is empty')

    # stock may have moved since the items were added
    for item in cart.items:
        product = item.product
        if not product or not product.status:
            raise ValidationError('Product no longer available', f'Remove item {item.product_id} from your cart')
        if product.quantity < item.quantity:
            raise ValidationError('Insufficient stock', f'Only {product.quantity} of {product.name} left in stock')

    summary = cart_summary(cart)
    order = Order(
        user_id=user_id,
        full_name=str(data['fullName']).strip(),
        phone=str(data['phone']).strip(),
        address=str(data['address']).strip(),
        city=str(data['city']).strip(),
        postal_code=data.get('postalCode'),
        country=data.get('country'),
        payment_method=payment_method,
        total_mrp=summary['totalMrp'],
        tax_charge=summary['taxCharge'],
        shipping_charge=summary['shippingCharge'],
        total_amount=summary['totalAmount'],
        status='placed',
    )

    # snapshot the cart into the order and take the stock
    for item in cart.items:
        order.items.append(OrderItem(
            product_id=item.product_id,
            name=item.product.name,
            image=item.product.image,
            quantity=item.quantity,
            price=item.price_at_time,
        ))
        item.product.quantity -= item.quantity

    db.session.add(order)
    cart.items.clear()
    db.session.commit()

    current_app.logger.info('Order %s placed by user %s', order.order_id, user_id)
    return jsonify({'message': 'Order placed successfully', 'checkout': order.to_dict()}), 201


# 🟢 Past orders
@checkout_bp.route('/get/checkout', methods=['GET'])
@jwt_required()
def get_checkout():
    orders = Order.query.filter_by(user_id=resolve_user_id()).order_by(
        Order.created_at.desc(), Order.order_id.desc()
    ).all()
    return jsonify([o.to_dict() for o in orders]), 200
