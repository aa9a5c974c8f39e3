from shopzify import db
from datetime import datetime
from sqlalchemy.orm import validates
from werkzeug.security import generate_password_hash, check_password_hash

# BIGINT primary keys do not autoincrement on SQLite
BigId = db.BigInteger().with_variant(db.Integer, 'sqlite')


def _money(value):
    return round(float(value), 2) if value is not None else 0.0


# -------------------------
# User Model
# -------------------------
class User(db.Model):
    __tablename__ = 'users'

    user_id = db.Column(BigId, primary_key=True, autoincrement=True)
    name = db.Column(db.String(150), nullable=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.Text, nullable=True)
    is_admin = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    wishlist = db.relationship('Wishlist', backref='user', uselist=False, lazy=True)
    orders = db.relationship('Order', backref='user', lazy=True)

    # Password methods
    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            "_id": self.user_id,
            "name": self.name,
            "email": self.email,
            "isAdmin": bool(self.is_admin),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


# -------------------------
# Product Model
# -------------------------
class Product(db.Model):
    __tablename__ = 'products'

    product_id = db.Column(BigId, primary_key=True, autoincrement=True)
    image = db.Column(db.Text, nullable=False)
    name = db.Column(db.String(150), nullable=False)
    discounted_price = db.Column(db.Numeric(10, 2), nullable=False)
    original_price = db.Column(db.Numeric(10, 2), nullable=False)
    description = db.Column(db.Text, nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    gender = db.Column(db.String(50), nullable=False)
    category = db.Column(db.String(100), nullable=False)
    status = db.Column(db.Boolean, nullable=False, default=True)
    badge = db.Column(db.String(50), nullable=False)
    record_date = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    # Fields accepted from the JSON API, keyed by their wire names
    FIELD_MAP = {
        'image': 'image',
        'name': 'name',
        'discountedPrice': 'discounted_price',
        'originalPrice': 'original_price',
        'description': 'description',
        'quantity': 'quantity',
        'gender': 'gender',
        'category': 'category',
        'status': 'status',
        'badge': 'badge',
    }

    @validates('description', 'category')
    def _lowercase(self, key, value):
        return value.lower() if isinstance(value, str) else value

    def to_dict(self):
        return {
            "_id": self.product_id,
            "image": self.image,
            "name": self.name,
            "discountedPrice": _money(self.discounted_price),
            "originalPrice": _money(self.original_price),
            "description": self.description,
            "quantity": self.quantity,
            "gender": self.gender,
            "category": self.category,
            "status": bool(self.status),
            "badge": self.badge,
            "recordDate": self.record_date.isoformat() if self.record_date else None,
        }


# -------------------------
# Wishlist Model
# -------------------------
class Wishlist(db.Model):
    __tablename__ = 'wishlists'

    wishlist_id = db.Column(BigId, primary_key=True, autoincrement=True)
    user_id = db.Column(BigId, db.ForeignKey('users.user_id', ondelete='CASCADE'), unique=True, nullable=False)
    version = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    items = db.relationship(
        'WishlistItem',
        backref='wishlist',
        lazy=True,
        order_by='WishlistItem.wishlist_item_id',
        cascade='all, delete-orphan'
    )

    # Every UPDATE is conditional on the revision the row was read at
    __mapper_args__ = {'version_id_col': version}

    def index(self):
        """Map product id -> entry for membership checks."""
        return {item.product_id: item for item in self.items}

    def touch(self):
        # Forces an UPDATE of this row so the revision check runs even when
        # only the item collection changed.
        self.updated_at = datetime.utcnow()

    def to_dict(self):
        return {
            "_id": self.wishlist_id,
            "userId": self.user_id,
            "products": [item.to_dict() for item in self.items],
        }


# -------------------------
# WishlistItem Model
# -------------------------
class WishlistItem(db.Model):
    __tablename__ = 'wishlist_items'
    __table_args__ = (
        db.UniqueConstraint('wishlist_id', 'product_id', name='unique_wishlist_product'),
    )

    wishlist_item_id = db.Column(BigId, primary_key=True, autoincrement=True)
    wishlist_id = db.Column(BigId, db.ForeignKey('wishlists.wishlist_id', ondelete='CASCADE'), nullable=False)
    # Not a foreign key: the entry is a snapshot and may outlive the product
    product_id = db.Column(BigId, nullable=False)
    name = db.Column(db.String(150), nullable=False)
    image = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(100), nullable=True)
    description = db.Column(db.Text, nullable=True)
    gender = db.Column(db.String(50), nullable=True)
    discounted_price = db.Column(db.Numeric(10, 2), nullable=True)
    original_price = db.Column(db.Numeric(10, 2), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @classmethod
    def from_product(cls, product):
        return cls(
            product_id=product.product_id,
            name=product.name,
            image=product.image,
            category=product.category,
            description=product.description,
            gender=product.gender,
            discounted_price=product.discounted_price,
            original_price=product.original_price,
        )

    def to_dict(self):
        return {
            "_id": self.wishlist_item_id,
            "productId": self.product_id,
            "name": self.name,
            "image": self.image,
            "category": self.category,
            "description": self.description,
            "gender": self.gender,
            "discountedPrice": _money(self.discounted_price),
            "originalPrice": _money(self.original_price),
        }


# -------------------------
# Cart Model
# -------------------------
class Cart(db.Model):
    __tablename__ = 'carts'

    cart_id = db.Column(BigId, primary_key=True, autoincrement=True)
    user_id = db.Column(BigId, db.ForeignKey('users.user_id', ondelete='CASCADE'), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship("User", backref=db.backref("cart", uselist=False))
    items = db.relationship(
        "CartItem",
        backref="cart",
        lazy=True,
        order_by='CartItem.cart_item_id',
        cascade="all, delete-orphan"
    )

    def summary(self, tax_rate, shipping_charge, free_shipping_threshold):
        """Price breakdown shown on the cart and checkout pages."""
        total_mrp = round(sum(float(item.price_at_time) * item.quantity for item in self.items), 2)
        total_quantity = sum(item.quantity for item in self.items)
        tax_charge = round(total_mrp * tax_rate, 2)
        if not self.items or total_mrp >= free_shipping_threshold:
            shipping = 0.0
        else:
            shipping = round(float(shipping_charge), 2)
        return {
            "totalMrp": total_mrp,
            "taxCharge": tax_charge,
            "shippingCharge": shipping,
            "totalAmount": round(total_mrp + tax_charge + shipping, 2),
            "totalQuantity": total_quantity,
        }


# -------------------------
# CartItem Model
# -------------------------
class CartItem(db.Model):
    __tablename__ = 'cart_items'
    __table_args__ = (
        db.UniqueConstraint('cart_id', 'product_id', name='unique_cart_product'),
    )

    cart_item_id = db.Column(BigId, primary_key=True, autoincrement=True)
    cart_id = db.Column(BigId, db.ForeignKey('carts.cart_id', ondelete='CASCADE'), nullable=False)
    product_id = db.Column(BigId, db.ForeignKey('products.product_id', ondelete='CASCADE'), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    price_at_time = db.Column(db.Numeric(10, 2), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    product = db.relationship('Product', lazy=True)

    def to_dict(self):
        product = self.product
        return {
            "_id": self.cart_item_id,
            "productId": self.product_id,
            "name": product.name if product else "Deleted Product",
            "image": product.image if product else None,
            "originalPrice": _money(product.original_price) if product else None,
            "discountedPrice": _money(self.price_at_time),
            "quantity": self.quantity,
            "price": round(float(self.price_at_time) * self.quantity, 2),
        }


# -------------------------
# Order Model
# -------------------------
class Order(db.Model):
    __tablename__ = 'orders'

    order_id = db.Column(BigId, primary_key=True, autoincrement=True)
    user_id = db.Column(BigId, db.ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False)
    full_name = db.Column(db.String(150), nullable=False)
    phone = db.Column(db.String(20), nullable=False)
    address = db.Column(db.String(255), nullable=False)
    city = db.Column(db.String(100), nullable=False)
    postal_code = db.Column(db.String(20), nullable=True)
    country = db.Column(db.String(100), nullable=True)
    payment_method = db.Column(db.String(50), default='cod')
    total_mrp = db.Column(db.Numeric(10, 2), nullable=False)
    tax_charge = db.Column(db.Numeric(10, 2), nullable=False)
    shipping_charge = db.Column(db.Numeric(10, 2), nullable=False)
    total_amount = db.Column(db.Numeric(10, 2), nullable=False)
    status = db.Column(db.String(50), default='placed')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    items = db.relationship("OrderItem", backref="order", lazy=True, cascade="all, delete")

    def to_dict(self):
        return {
            "_id": self.order_id,
            "userId": self.user_id,
            "fullName": self.full_name,
            "phone": self.phone,
            "address": self.address,
            "city": self.city,
            "postalCode": self.postal_code,
            "country": self.country,
            "paymentMethod": self.payment_method,
            "summary": {
                "totalMrp": _money(self.total_mrp),
                "taxCharge": _money(self.tax_charge),
                "shippingCharge": _money(self.shipping_charge),
                "totalAmount": _money(self.total_amount),
            },
            "status": self.status,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "products": [item.to_dict() for item in self.items],
        }


# -------------------------
# OrderItem Model
# -------------------------
class OrderItem(db.Model):
    __tablename__ = 'order_items'

    order_item_id = db.Column(BigId, primary_key=True, autoincrement=True)
    order_id = db.Column(BigId, db.ForeignKey('orders.order_id', ondelete='CASCADE'), nullable=False)
    product_id = db.Column(BigId, nullable=False)
    name = db.Column(db.String(150), nullable=False)
    image = db.Column(db.Text, nullable=True)
    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)

    def to_dict(self):
        return {
            "_id": self.order_item_id,
            "productId": self.product_id,
            "name": self.name,
            "image": self.image,
            "quantity": self.quantity,
            "discountedPrice": _money(self.price),
            "price": round(float(self.price) * self.quantity, 2),
        }
