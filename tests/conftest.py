import itertools

import pytest

from app import create_app
from services import OrderService, ReviewService
from settings import Settings
from store import MemoryStore


class RecordingNotifier:

    def __init__(self):
        self.orders = []

    def order_created(self, order):
        self.orders.append(order)


def ticking_clock(start=1_700_000_000_000):
    counter = itertools.count(start)
    return lambda: next(counter)


@pytest.fixture
def settings(tmp_path):
    return Settings(data_dir=str(tmp_path), merchant_upi_id='shop@upi', merchant_name='TEST SHOP')


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def order_service(notifier):
    return OrderService(
        MemoryStore(),
        notifier=notifier,
        merchant_upi_id='shop@upi',
        merchant_name='TEST SHOP',
        clock=ticking_clock(),
    )


@pytest.fixture
def review_service():
    return ReviewService(MemoryStore(), clock=ticking_clock())


@pytest.fixture
def app(settings, notifier):
    return create_app(settings, notifier=notifier)


@pytest.fixture
def client(app):
    return app.test_client()
