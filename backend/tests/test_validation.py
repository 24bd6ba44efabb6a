# Overview: Pytest coverage for sale request parsing.

import pytest

from counterpos.validation import (
    MAX_PRICE_CENTS,
    ValidationError,
    coerce_int,
    parse_sale_request,
)


class TestCoerceInt:

    @pytest.mark.parametrize("value,expected", [(3, 3), ("42", 42), (" -7 ", -7)])
    def test_accepts_plain_integers(self, value, expected):
        assert coerce_int("qty", value) == expected

    @pytest.mark.parametrize("value", [True, 1.0, "1.5", "1e3", "", "abc", None])
    def test_rejects_everything_else(self, value):
        with pytest.raises(ValidationError):
            coerce_int("qty", value)


class TestParseSaleRequest:

    def test_bare_array(self):
        request = parse_sale_request([{"product_id": 1, "quantity": 2, "price_cents": 150}])

        assert request.payment_type == "CASH"
        assert request.amount_paid_cents is None
        assert request.items[0].quantity == 2
        assert request.items[0].name == "product #1"

    def test_object_with_payment(self):
        request = parse_sale_request({
            "items": [{"product_id": "5", "quantity": "1", "price_cents": 99, "name": " Pen "}],
            "payment_type": "card",
            "discount_cents": 10,
        })

        assert request.payment_type == "CARD"
        assert request.discount_cents == 10
        assert request.items[0].product_id == 5
        assert request.items[0].name == "Pen"

    def test_empty_items_left_to_sale_handler(self):
        assert parse_sale_request({"items": []}).items == []
        assert parse_sale_request(None).items == []

    @pytest.mark.parametrize("line", [
        {"product_id": 1, "quantity": 0, "price_cents": 100},
        {"product_id": 0, "quantity": 1, "price_cents": 100},
        {"product_id": 1, "quantity": 1, "price_cents": MAX_PRICE_CENTS + 1},
        {"product_id": 1, "quantity": 1},
        "not-an-object",
    ])
    def test_bad_lines(self, line):
        with pytest.raises(ValidationError):
            parse_sale_request([line])

    def test_items_must_be_list(self):
        with pytest.raises(ValidationError):
            parse_sale_request({"items": {"product_id": 1}})

    def test_non_object_payload(self):
        with pytest.raises(ValidationError):
            parse_sale_request("cart")
