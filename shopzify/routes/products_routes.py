from flask import Blueprint, jsonify, request, current_app
from sqlalchemy import or_, func
from decimal import Decimal, InvalidOperation
import re
from shopzify.models import db, Product
from shopzify.utils.admin_decorator import admin_required
from shopzify.utils.errors import NotFound, ValidationError

products_bp = Blueprint('products_bp', __name__)

# Nav menus and search keys that stand for a gender rather than free text
GENDER_SYNONYMS = {
    'men': 'male',
    'women': 'female',
}

REQUIRED_PRODUCT_FIELDS = [
    'image', 'name', 'discountedPrice', 'originalPrice', 'description',
    'quantity', 'gender', 'category', 'badge',
]


def _limit_arg():
    """Parse ``?limit=``; missing, invalid or non-positive means no limit."""
    try:
        limit = int(request.args.get('limit', ''))
    except ValueError:
        return None
    return limit if limit > 0 else None


def _like(term):
    escaped = term.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
    return f"%{escaped}%"


def _coerce_product_fields(data):
    """Map wire names onto model attributes, coercing numeric fields."""
    values = {}
    for wire_name, attr in Product.FIELD_MAP.items():
        if wire_name not in data:
            continue
        value = data[wire_name]
        try:
            if attr in ('discounted_price', 'original_price'):
                value = Decimal(str(value))
            elif attr == 'quantity':
                value = int(value)
            elif attr == 'status':
                value = bool(value)
        except (TypeError, ValueError, InvalidOperation):
            raise ValidationError(f'Invalid value for {wire_name}')
        values[attr] = value
    return values


def _get_product_or_404(product_id):
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFound('Cannot find product')
    return product


# Getting user products
@products_bp.route('', methods=['GET'])
def get_products():
    query = Product.query.filter_by(status=True).order_by(Product.product_id)
    limit = _limit_arg()
    if limit:
        query = query.limit(limit)
    return jsonify({'productDetails': [p.to_dict() for p in query.all()]}), 200


# Getting admin products
@products_bp.route('/admin/products', methods=['GET'])
@admin_required
def get_admin_products():
    query = Product.query.order_by(Product.product_id)
    limit = _limit_arg()
    if limit:
        query = query.limit(limit)
    return jsonify({'productDetails': [p.to_dict() for p in query.all()]}), 200


# Nav Menu and Submenu
@products_bp.route('/nav/<string:menu>', methods=['GET'])
@products_bp.route('/nav/<string:menu>/<string:sublabel>', methods=['GET'])
def search_nav_products(menu, sublabel=None):
    menu = menu.lower()
    # Products carry no sublabel field; it is accepted for the client's
    # menu URLs but does not narrow the result.
    current_app.logger.debug('Nav query menu=%s sublabel=%s', menu, sublabel)

    query = Product.query.filter(Product.status.is_(True))
    if menu in GENDER_SYNONYMS:
        query = query.filter(func.lower(Product.gender) == GENDER_SYNONYMS[menu])
    else:
        query = query.filter(Product.category == menu)

    products = query.order_by(Product.product_id).all()
    return jsonify({'products': [p.to_dict() for p in products]}), 200


# Search Products by category name
@products_bp.route('/category/<string:key>', methods=['GET'])
def search_category(key):
    products = Product.query.filter(
        Product.status.is_(True),
        Product.category.ilike(_like(key.strip()), escape='\\'),
    ).order_by(Product.product_id).all()
    return jsonify([p.to_dict() for p in products]), 200


def search_products_by_key(key):
    """Active products whose name, description, category or gender match ``key``.

    ``men`` and ``women`` only match on gender, and only as the whole word
    ``male``/``female`` so that ``female`` never counts as ``male``.
    """
    key = ' '.join(key.split())
    if not key:
        return []

    gender = GENDER_SYNONYMS.get(key.lower())
    if gender:
        word = re.compile(r'\b%s\b' % gender, re.IGNORECASE)
        candidates = Product.query.filter(
            Product.status.is_(True),
            Product.gender.ilike(_like(gender), escape='\\'),
        ).order_by(Product.product_id).all()
        return [p for p in candidates if word.search(p.gender or '')]

    # any run of whitespace in the key matches any run of whitespace in a field
    pattern = re.compile(r'\s+'.join(re.escape(part) for part in key.split(' ')), re.IGNORECASE)
    first = key.split(' ')[0]
    candidates = Product.query.filter(
        Product.status.is_(True),
        or_(
            Product.name.ilike(_like(first), escape='\\'),
            Product.description.ilike(_like(first), escape='\\'),
            Product.category.ilike(_like(first), escape='\\'),
            Product.gender.ilike(_like(first), escape='\\'),
        ),
    ).order_by(Product.product_id).all()
    return [
        p for p in candidates
        if any(pattern.search(value or '') for value in (p.name, p.description, p.category, p.gender))
    ]


# Search Product by name, description, category and gender
@products_bp.route('/search/<string:key>', methods=['GET'])
def search_products(key):
    products = search_products_by_key(key)
    return jsonify([p.to_dict() for p in products]), 200


# Creating one
@products_bp.route('', methods=['POST'])
@admin_required
def create_product():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be JSON')

    missing_fields = [field for field in REQUIRED_PRODUCT_FIELDS if data.get(field) in (None, '')]
    if missing_fields:
        raise ValidationError(f'Missing required fields: {", ".join(missing_fields)}')

    product = Product(**_coerce_product_fields(data))
    db.session.add(product)
    db.session.commit()
    current_app.logger.info('Created product %s', product.product_id)
    return jsonify(product.to_dict()), 201


# Updating One
@products_bp.route('/<int:product_id>', methods=['PATCH'])
@admin_required
def update_product(product_id):
    product = _get_product_or_404(product_id)
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be JSON')

    for attr, value in _coerce_product_fields(data).items():
        setattr(product, attr, value)
    db.session.commit()
    return jsonify(product.to_dict()), 200


# Deleting One
@products_bp.route('/<int:product_id>', methods=['DELETE'])
@admin_required
def delete_product(product_id):
    product = _get_product_or_404(product_id)
    db.session.delete(product)
    db.session.commit()
    current_app.logger.info('Deleted product %s', product_id)
    return jsonify({'message': 'Deleted Product'}), 200
