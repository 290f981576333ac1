import json

import pytest
from ordering.notifications import reset_notifier, set_notifier
from ordering.notifications.fake_adapter import FakeOrderNotifier
from ordering.order.creation import PlaceOrder
from ordering.order.order import Order
from ordering.reconciliation.feed import reset_feed, set_feed
from ordering.reconciliation.feed.fake_adapter import FakeBankFeed
from ordering.settings import reset_settings
from ordering.stock.management import RegisterVariantStock
from protean import current_domain
from protean.integrations.pytest import DomainFixture

DEFAULT_ADDRESS = {
    "full_name": "Nguyen Van A",
    "phone": "0900000000",
    "street": "1 Le Loi",
    "ward": "Ben Nghe",
    "district": "District 1",
    "city": "Ho Chi Minh City",
}


def order_line(variant_id="var-001", quantity=1, unit_price=250000.0, **overrides):
    line = {
        "variant_id": variant_id,
        "product_id": "prod-001",
        "product_name": "Linen Shirt",
        "product_slug": "linen-shirt",
        "sku": "SHIRT-M-WHT",
        "attributes": {"size": "M", "color": "white"},
        "unit_price": unit_price,
        "quantity": quantity,
    }
    line.update(overrides)
    return line


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()


@pytest.fixture(autouse=True)
def _reset_adapters():
    reset_settings()
    reset_feed()
    reset_notifier()
    yield
    reset_settings()
    reset_feed()
    reset_notifier()


@pytest.fixture()
def settings_env(monkeypatch):
    """Set environment-backed settings for one test: ``settings_env(BANKING_WEBHOOK_SECRET="x")``."""

    def _apply(**values):
        for key, value in values.items():
            monkeypatch.setenv(key, str(value))
        reset_settings()

    return _apply


@pytest.fixture()
def notifier():
    fake = FakeOrderNotifier()
    set_notifier(fake)
    return fake


@pytest.fixture()
def feed():
    fake = FakeBankFeed()
    set_feed(fake)
    return fake


@pytest.fixture()
def register_stock():
    def _register(variant_id="var-001", available=10, sku="SHIRT-M-WHT"):
        return current_domain.process(
            RegisterVariantStock(variant_id=variant_id, sku=sku, available=available),
            asynchronous=False,
        )

    return _register


@pytest.fixture()
def place_order():
    """Place an order and return the persisted aggregate."""

    def _place(items=None, payment_method="bank_transfer", user_id="user-001", discount=0.0, coupon_code=None):
        order_id = current_domain.process(
            PlaceOrder(
                user_id=user_id,
                items=json.dumps(items if items is not None else [order_line()]),
                shipping_address=json.dumps(DEFAULT_ADDRESS),
                payment_method=payment_method,
                discount=discount,
                coupon_code=coupon_code,
            ),
            asynchronous=False,
        )
        return current_domain.repository_for(Order).get(order_id)

    return _place


@pytest.fixture()
def make_line():
    return order_line


@pytest.fixture()
def shipping_address():
    return dict(DEFAULT_ADDRESS)
