"""Tests for the fake and Stripe payment gateway adapters."""

import hashlib
import hmac
import json
import time
from types import SimpleNamespace

import pytest
import stripe
from storefront.errors import GatewayError, InvalidSignature
from storefront.payments.gateway import get_gateway, reset_gateway, set_gateway
from storefront.payments.gateway.fake_adapter import FakeGateway
from storefront.payments.gateway.port import SessionLineItem
from storefront.payments.gateway.stripe_adapter import StripeGateway

LINE_ITEMS = [
    SessionLineItem(name="Glitter Goddess (M, Gold)", unit_amount=2999, quantity=1),
    SessionLineItem(name="Tax", unit_amount=240, quantity=1),
]


def _session_args(**overrides):
    args = {
        "line_items": LINE_ITEMS,
        "metadata": {"orderId": "ord-001", "userId": "user-001"},
        "success_url": "https://shop.test/success",
        "cancel_url": "https://shop.test/cart",
    }
    args.update(overrides)
    return args


def _stripe_header(payload: bytes, secret: str, timestamp: int | None = None) -> str:
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload.decode()}".encode()
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


class TestFakeGateway:
    def test_creates_session(self):
        gateway = FakeGateway()

        session = gateway.create_checkout_session(**_session_args())

        assert session.session_id.startswith("cs_fake_")
        assert gateway.calls[-1]["metadata"]["orderId"] == "ord-001"

    def test_configured_failure(self):
        gateway = FakeGateway()
        gateway.configure(should_succeed=False, failure_reason="down")

        with pytest.raises(GatewayError, match="down"):
            gateway.create_checkout_session(**_session_args())

    def test_verifies_own_signature(self):
        gateway = FakeGateway(webhook_secret="whsec_test")
        payload = gateway.event_payload("checkout.session.completed", {"id": "cs_1"}, event_id="evt_1")

        event = gateway.construct_event(payload, gateway.sign(payload))

        assert (event.event_id, event.type, event.data) == ("evt_1", "checkout.session.completed", {"id": "cs_1"})

    @pytest.mark.parametrize("signature", ["", "deadbeef"])
    def test_rejects_bad_signature(self, signature):
        gateway = FakeGateway()
        payload = gateway.event_payload("checkout.session.completed", {})

        with pytest.raises(InvalidSignature):
            gateway.construct_event(payload, signature)

    def test_rejects_payload_signed_with_other_secret(self):
        payload = FakeGateway.event_payload("payment_intent.succeeded", {"id": "pi_1"})
        signature = FakeGateway(webhook_secret="whsec_other").sign(payload)

        with pytest.raises(InvalidSignature):
            FakeGateway(webhook_secret="whsec_test").construct_event(payload, signature)

    def test_rejects_tampered_payload(self):
        gateway = FakeGateway()
        payload = gateway.event_payload("payment_intent.succeeded", {"id": "pi_1"})
        signature = gateway.sign(payload)

        with pytest.raises(InvalidSignature):
            gateway.construct_event(payload.replace(b"pi_1", b"pi_2"), signature)

    def test_rejects_signed_non_utf8_payload(self):
        gateway = FakeGateway()
        payload = b"\xff\xfe{}"

        with pytest.raises(InvalidSignature):
            gateway.construct_event(payload, gateway.sign(payload))


class TestGatewayFactory:
    def test_defaults_to_fake(self, monkeypatch):
        monkeypatch.delenv("PAYMENT_GATEWAY", raising=False)
        reset_gateway()

        assert isinstance(get_gateway(), FakeGateway)
        reset_gateway()

    def test_stripe_from_environment(self, monkeypatch):
        monkeypatch.setenv("PAYMENT_GATEWAY", "stripe")
        monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test_123")
        monkeypatch.setenv("STRIPE_WEBHOOK_SECRET", "whsec_123")
        reset_gateway()

        gateway = get_gateway()

        assert isinstance(gateway, StripeGateway)
        assert gateway.webhook_secret == "whsec_123"
        reset_gateway()

    def test_set_gateway_overrides(self):
        gateway = FakeGateway()
        set_gateway(gateway)

        assert get_gateway() is gateway
        reset_gateway()


class TestStripeGateway:
    @pytest.fixture()
    def gateway(self):
        return StripeGateway(api_key="sk_test_123", webhook_secret="whsec_test")

    def test_session_params(self, gateway, monkeypatch):
        captured = {}

        def fake_create(**kwargs):
            captured.update(kwargs)
            return SimpleNamespace(id="cs_test_1", url="https://checkout.stripe.com/c/cs_test_1")

        monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

        session = gateway.create_checkout_session(**_session_args(customer_email="jane@example.com"))

        assert session.session_id == "cs_test_1"
        assert captured["api_key"] == "sk_test_123"
        assert captured["idempotency_key"] == "checkout-ord-001"
        assert captured["mode"] == "payment"
        assert captured["metadata"] == {"orderId": "ord-001", "userId": "user-001"}
        assert captured["customer_email"] == "jane@example.com"
        assert captured["shipping_address_collection"] == {"allowed_countries": ["US", "CA"]}
        assert captured["line_items"][0] == {
            "price_data": {
                "currency": "usd",
                "product_data": {"name": "Glitter Goddess (M, Gold)"},
                "unit_amount": 2999,
            },
            "quantity": 1,
        }

    def test_stripe_error_becomes_gateway_error(self, gateway, monkeypatch):
        def failing_create(**kwargs):
            raise stripe.APIConnectionError("connection refused")

        monkeypatch.setattr(stripe.checkout.Session, "create", failing_create)

        with pytest.raises(GatewayError):
            gateway.create_checkout_session(**_session_args())

    def test_construct_event_with_valid_signature(self, gateway):
        payload = json.dumps(
            {"id": "evt_1", "type": "payment_intent.succeeded", "data": {"object": {"id": "pi_1"}}}
        ).encode()

        event = gateway.construct_event(payload, _stripe_header(payload, "whsec_test"))

        assert event.type == "payment_intent.succeeded"
        assert event.data == {"id": "pi_1"}

    def test_construct_event_rejects_wrong_secret(self, gateway):
        payload = b'{"id": "evt_1", "type": "payment_intent.succeeded", "data": {"object": {}}}'

        with pytest.raises(InvalidSignature):
            gateway.construct_event(payload, _stripe_header(payload, "whsec_other"))

    def test_construct_event_rejects_stale_timestamp(self, gateway):
        payload = b'{"id": "evt_1", "type": "payment_intent.succeeded", "data": {"object": {}}}'
        header = _stripe_header(payload, "whsec_test", timestamp=int(time.time()) - 3600)

        with pytest.raises(InvalidSignature):
            gateway.construct_event(payload, header)

    def test_construct_event_rejects_missing_header(self, gateway):
        with pytest.raises(InvalidSignature):
            gateway.construct_event(b"{}", "")

    def test_construct_event_rejects_non_utf8_payload(self, gateway):
        with pytest.raises(InvalidSignature):
            gateway.construct_event(b"\xff\xfe{}", "t=1,v1=abc")
