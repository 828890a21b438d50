"""
Storefront order & review intake.

Takes order submissions (with an optional UPI payment link), lets the shop
update order status, and keeps customer reviews. Orders and reviews live in
two JSON files in DATA_DIR.

Run with `python app.py` or `flask --app app run`.
"""

import json
import logging

from flask import Blueprint, Flask, current_app, jsonify, render_template_string, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from mailer import Mailer
from services import OrderService, ReviewService, now_ms
from settings import load_settings
from store import IntakeError, JsonFileStore

logger = logging.getLogger(__name__)

CORS_METHODS = ['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS']
CORS_HEADERS = ['Content-Type', 'Authorization']

ADMIN_DUMP = """<html><body><h1>{{ title }} ({{ records|length }})</h1><pre>{{ dump }}</pre></body></html>"""

api = Blueprint('api', __name__)


# ============== HELPERS ==============

def orders():
    return current_app.extensions['orders']


def reviews():
    return current_app.extensions['reviews']


def get_body():
    # json first, plain form posts are accepted too
    data = request.get_json(silent=True)
    if data is None and request.form:
        data = request.form.to_dict()
    return data if isinstance(data, dict) else {}


def render_dump(title, records):
    return render_template_string(
        ADMIN_DUMP, title=title, records=records, dump=json.dumps(records, indent=2))


# ============== ROUTES ==============

@api.route('/ping')
def ping():
    return jsonify({'ok': True, 'time': now_ms()})


# ---------- ORDERS ----------

@api.route('/api/orders', methods=['GET'])
def list_orders():
    return jsonify({'ok': True, 'orders': orders().list_orders()})


@api.route('/api/orders', methods=['POST'])
def create_order():
    order, upi_link = orders().create_order(get_body())
    if upi_link:
        return jsonify({'ok': True, 'order': order, 'upiLink': upi_link})
    return jsonify({'ok': True, 'order': order})


@api.route('/api/orders/<oid>', methods=['GET'])
def get_order(oid):
    return jsonify({'ok': True, 'order': orders().get_order(oid)})


@api.route('/api/orders/<oid>/status', methods=['POST'])
def update_order_status(oid):
    data = get_body()
    order = orders().update_status(oid, data.get('status'), data.get('note'))
    return jsonify({'ok': True, 'order': order})


# ---------- REVIEWS ----------

@api.route('/api/reviews', methods=['GET'])
def list_reviews():
    return jsonify({'ok': True, 'reviews': reviews().list_reviews()})


@api.route('/api/reviews', methods=['POST'])
def create_review():
    review = reviews().create_review(get_body())
    return jsonify({'ok': True, 'review': review})


# ---------- ADMIN ----------

@api.route('/admin/orders', methods=['GET'])
def admin_orders():
    return render_dump('Orders', orders().list_orders())


@api.route('/admin/reviews', methods=['GET'])
def admin_reviews():
    # stored order, not the sorted api listing
    return render_dump('Reviews', reviews().store.read_all())


# ============== ERROR HANDLERS ==============

def handle_intake_error(e):
    if e.status_code >= 500:
        logger.exception('%s: %s', type(e).__name__, e)
        return jsonify({'ok': False, 'error': 'server error'}), e.status_code
    return jsonify({'ok': False, 'error': e.message}), e.status_code


def handle_not_found(e):
    return jsonify({'ok': False, 'error': 'endpoint not found'}), 404


def handle_method_not_allowed(e):
    return jsonify({'ok': False, 'error': 'method not allowed'}), 405


def handle_exception(e):
    if isinstance(e, HTTPException):
        return jsonify({'ok': False, 'error': e.description}), e.code
    # details stay in the log, the client gets a generic message
    logger.exception('unhandled error on %s %s', request.method, request.path)
    return jsonify({'ok': False, 'error': 'server error'}), 500


# ============== APP ==============

def create_app(settings=None, order_store=None, review_store=None, notifier=None):
    settings = settings or load_settings()

    app = Flask(__name__)
    app.config['SETTINGS'] = settings
    app.config['DEBUG'] = settings.debug

    order_store = order_store or JsonFileStore(settings.orders_file, strict=settings.strict_storage)
    review_store = review_store or JsonFileStore(settings.reviews_file, strict=settings.strict_storage)
    order_store.ensure_exists()
    review_store.ensure_exists()

    if notifier is None:
        notifier = Mailer(settings)
        if not notifier.enabled:
            logger.info('SMTP_HOST or ADMIN_EMAIL not set, order mail disabled')

    app.extensions['orders'] = OrderService(
        order_store,
        notifier=notifier,
        merchant_upi_id=settings.merchant_upi_id,
        merchant_name=settings.merchant_name,
    )
    app.extensions['reviews'] = ReviewService(review_store)

    app.register_blueprint(api)
    app.register_error_handler(IntakeError, handle_intake_error)
    app.register_error_handler(404, handle_not_found)
    app.register_error_handler(405, handle_method_not_allowed)
    app.register_error_handler(Exception, handle_exception)

    CORS(app, origins=[settings.frontend_origin], methods=CORS_METHODS, allow_headers=CORS_HEADERS)

    return app


# ============== STARTUP ==============

if __name__ == '__main__':
    settings = load_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    app = create_app(settings)
    logger.info('backend running on http://localhost:%s', settings.port)
    logger.info('orders in %s, reviews in %s', settings.orders_file, settings.reviews_file)
    app.run(host=settings.host, port=settings.port, debug=settings.debug)
