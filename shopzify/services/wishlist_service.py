"""Wishlist domain operations.

Routes stay thin and only handle HTTP parsing/serialization; the toggle rules
and the conflict handling around them live here.
"""

from flask import current_app
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from shopzify.models import db, User, Product, Wishlist, WishlistItem
from shopzify.utils.errors import NotFound, ServerFault

ADDED = 'added'
REMOVED = 'removed'

MESSAGES = {
    ADDED: 'Product added to wishlist',
    REMOVED: 'Product removed from wishlist',
}


def resolve_product_id(product, is_wishlist=False):
    """Pick the product reference out of a toggle payload.

    Catalog products carry their id in ``_id``; entries that were already
    denormalized into a wishlist carry it in ``productId``.
    """
    if not isinstance(product, dict):
        return None
    raw = product.get('productId') if is_wishlist else product.get('_id')
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def get_user_or_404(user_id):
    user = db.session.get(User, user_id)
    if not user:
        raise NotFound('User not found')
    return user


def get_wishlist(user_id):
    get_user_or_404(user_id)
    wishlist = Wishlist.query.filter_by(user_id=user_id).first()
    if not wishlist:
        raise NotFound('Wishlist not found')
    return wishlist


def _toggle_once(user_id, product_id):
    get_user_or_404(user_id)

    wishlist = Wishlist.query.filter_by(user_id=user_id).first()
    if not wishlist:
        # Only added to the session once there is something to persist
        wishlist = Wishlist(user_id=user_id)

    existing = wishlist.index().get(product_id) if product_id is not None else None
    if existing:
        wishlist.items.remove(existing)
        wishlist.touch()
        db.session.commit()
        return REMOVED

    product = db.session.get(Product, product_id) if product_id is not None else None
    if not product:
        raise NotFound('Product not found')

    wishlist.items.append(WishlistItem.from_product(product))
    wishlist.touch()
    db.session.add(wishlist)
    db.session.commit()
    return ADDED


def toggle_wishlist(user_id, product_id):
    """Add ``product_id`` to the user's wishlist if absent, remove it if present.

    Writes are conditional on the wishlist revision. When another request
    changed the wishlist (or created it) between our read and our write, the
    transaction is rolled back and the toggle is decided again on fresh state.
    Returns ``ADDED`` or ``REMOVED``.
    """
    attempts = max(1, int(current_app.config.get('WISHLIST_TOGGLE_ATTEMPTS', 3)))
    for attempt in range(1, attempts + 1):
        try:
            action = _toggle_once(user_id, product_id)
        except NotFound:
            db.session.rollback()
            raise
        except (StaleDataError, IntegrityError) as e:
            db.session.rollback()
            current_app.logger.warning(
                'Wishlist conflict for user %s on product %s (attempt %d/%d): %s',
                user_id, product_id, attempt, attempts, e.__class__.__name__
            )
            continue
        current_app.logger.info('Wishlist %s product %s for user %s', action, product_id, user_id)
        return action

    raise ServerFault('Something went wrong', 'Your wishlist changed while saving, please try again')
