"""
Order and review intake.

Both services do one full read-modify-write of their collection per call.
A lock per service keeps two writers in this process from dropping each
other's records; separate processes sharing a data dir can still race.
"""

import logging
import math
import random
import threading
import time
from urllib.parse import quote

from store import IntakeError

logger = logging.getLogger(__name__)

ID_ALPHABET = '0123456789abcdefghijklmnopqrstuvwxyz'
ID_LENGTH = 7

ORDER_PREFIX = 'ORD_'
REVIEW_PREFIX = 'REV_'

DEFAULT_PAYMENT_METHOD = 'COD'
DEFAULT_RATING = 5
UPI_CURRENCY = 'INR'


class InvalidInput(IntakeError):
    status_code = 400
    message = 'invalid input'


class NotFound(IntakeError):
    status_code = 404
    message = 'not found'


# ============== HELPERS ==============

def gen_id(prefix, rng=random):
    # base-36 digits of a random fraction; collisions are possible, just unlikely
    frac = rng.random()
    chars = []
    for _ in range(ID_LENGTH):
        frac *= 36
        digit = int(frac)
        chars.append(ID_ALPHABET[digit])
        frac -= digit
    return prefix + ''.join(chars)


def now_ms():
    return int(time.time() * 1000)


def to_number(value, default):
    """numbers and numeric strings pass through, anything else is the default"""
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return default
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return default
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def format_amount(amount):
    return f'{float(amount or 0):.2f}'


def encode_component(value):
    # same escaping as a browser's encodeURIComponent
    return quote(str(value), safe="-_.!~*'()")


def _text(value):
    if not isinstance(value, str):
        return ''
    return value.strip()


# ============== ORDERS ==============

class OrderService:

    def __init__(self, store, notifier=None, merchant_upi_id='', merchant_name='',
                 clock=now_ms, rng=random):
        self.store = store
        self.notifier = notifier
        self.merchant_upi_id = merchant_upi_id
        self.merchant_name = merchant_name
        self.clock = clock
        self.rng = rng
        self._lock = threading.Lock()

    def create_order(self, data):
        """validate and persist a new order, returns (order, upi_link or None)"""
        data = data or {}
        items = data.get('items')
        if not isinstance(items, list) or not items:
            raise InvalidInput('no items provided')

        payment_method = data.get('paymentMethod') or DEFAULT_PAYMENT_METHOD
        total = to_number(data.get('total'), 0)
        if total < 0:
            total = 0
        customer = data.get('customer')
        meta = data.get('meta')

        order = {
            'id': gen_id(ORDER_PREFIX, self.rng),
            'items': items,
            'total': total,
            'paymentMethod': payment_method,
            'status': 'processing' if payment_method == 'COD' else 'pending_payment',
            'createdAt': self.clock(),
            'customer': customer if isinstance(customer, dict) else {},
            'meta': meta if isinstance(meta, dict) else {},
        }

        with self._lock:
            orders = self.store.read_all()
            orders.insert(0, order)
            self.store.write_all(orders)

        logger.info('order %s created, total=%s payment=%s', order['id'], total, payment_method)
        self._notify(order)

        upi_link = None
        if payment_method == 'UPI':
            upi_link = self.build_upi_link(order)
        return order, upi_link

    def _notify(self, order):
        if self.notifier is None:
            return
        try:
            self.notifier.order_created(order)
        except Exception:
            # notification never fails the order
            logger.warning('could not dispatch notification for %s', order['id'], exc_info=True)

    def build_upi_link(self, order):
        params = [
            ('pa', self.merchant_upi_id),
            ('pn', self.merchant_name),
            ('am', format_amount(order.get('total'))),
            ('tn', f"Order {order['id']}"),
        ]
        query = '&'.join(f'{k}={encode_component(v)}' for k, v in params)
        return f'upi://pay?{query}&cu={UPI_CURRENCY}'

    def list_orders(self):
        return self.store.read_all()

    def get_order(self, order_id):
        for order in self.store.read_all():
            if order.get('id') == order_id:
                return order
        raise NotFound('not found')

    def update_status(self, order_id, status=None, note=None):
        with self._lock:
            orders = self.store.read_all()
            order = next((o for o in orders if o.get('id') == order_id), None)
            if order is None:
                raise NotFound('not found')
            # status is free-form, empty keeps the current one
            if status:
                order['status'] = status
            if note:
                order['note'] = note
            self.store.write_all(orders)

        logger.info('order %s status=%s', order_id, order.get('status'))
        return order


# ============== REVIEWS ==============

class ReviewService:

    def __init__(self, store, clock=now_ms, rng=random):
        self.store = store
        self.clock = clock
        self.rng = rng
        self._lock = threading.Lock()

    def create_review(self, data):
        data = data or {}
        name = _text(data.get('name'))
        comment = _text(data.get('comment'))
        if not name or not comment:
            raise InvalidInput('name & comment required')

        # 0 counts as "not given", same as a missing rating
        rating = to_number(data.get('rating'), DEFAULT_RATING) or DEFAULT_RATING
        review = {
            'id': gen_id(REVIEW_PREFIX, self.rng),
            'name': name,
            'rating': rating,
            'comment': comment,
            'createdAt': self.clock(),
        }

        with self._lock:
            reviews = self.store.read_all()
            reviews.insert(0, review)
            self.store.write_all(reviews)

        logger.info('review %s created, rating=%s', review['id'], rating)
        return review

    def list_reviews(self):
        reviews = self.store.read_all()
        # newest first
        reviews.sort(key=lambda r: to_number(r.get('createdAt'), 0), reverse=True)
        return reviews
