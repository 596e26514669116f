"""Tests for address stringification and normalization."""

import pytest

from post_fulfillment.address import AddressNormalizer, is_correct
from post_fulfillment.errors import CarrierError, TransportError
from post_fulfillment.models import Cart


class TestIsCorrect:
    """Test the confidence flag of a cleansed address."""

    @pytest.fixture
    def data(self):
        return {"quality-code": "GOOD", "validation-code": "VALIDATED", "index": "123456"}

    def test_trusted_address(self, data):
        assert is_correct(data, "123456 ") is True

    def test_index_mismatch(self, data):
        data["index"] = "123457"
        assert is_correct(data, "123456") is False

    @pytest.mark.parametrize("quality", ["POSTAL_BOX", "ON_DEMAND", "UNDEF_05"])
    def test_accepted_quality_codes(self, data, quality):
        data["quality-code"] = quality
        assert is_correct(data, "123456") is True

    @pytest.mark.parametrize("quality", ["UNDEF_01", "UNDEF_07", None])
    def test_rejected_quality_codes(self, data, quality):
        data["quality-code"] = quality
        assert is_correct(data, "123456") is False

    def test_unvalidated(self, data):
        data["validation-code"] = "NOT_VALIDATED_HAS_ASSUMPTION"
        assert is_correct(data, "123456") is False

    def test_missing_values(self, data):
        del data["validation-code"]
        assert is_correct(data, "123456") is False
        assert is_correct({"quality-code": "GOOD", "validation-code": "VALIDATED"}, "") is False


class TestAddressNormalizer:
    """Test batch and single address normalization."""

    def test_stringify_skips_empty_components(self, send_client, make_order):
        order = make_order(fields={"city": "", "house": " 1 "})
        normalizer = AddressNormalizer(send_client)
        assert normalizer.stringify(order) == "101000, Moscow, Tverskaya, 1"

    def test_batch_keeps_positions(self, send_client, make_order, cleaned_address):
        empty = {k: "" for k in ("post_code", "region", "city", "street", "house")}
        orders = [
            make_order("1"),
            make_order("2", fields=empty),
            make_order("3", fields={"post_code": "190000", "city": "St Petersburg"}),
        ]
        second = dict(cleaned_address, index="190000", **{"quality-code": "UNDEF_04"})
        send_client.normalize_addresses.return_value = [cleaned_address, second]

        result = AddressNormalizer(send_client).normalize_orders(orders)

        send_client.normalize_addresses.assert_called_once_with(
            [
                "101000, Moscow, Moscow, Tverskaya, 1",
                "190000, Moscow, St Petersburg, Tverskaya, 1",
            ]
        )
        assert set(result) == {"1", "3"}
        assert result["1"].is_correct is True
        assert result["1"].stringified_input == "101000, Moscow, Moscow, Tverskaya, 1"
        assert result["3"].is_correct is False
        assert result["3"].stringified_input.startswith("190000")

    def test_short_response_is_mapped_by_position(self, send_client, make_order, cleaned_address):
        orders = [make_order("1"), make_order("2")]
        send_client.normalize_addresses.return_value = [cleaned_address]
        result = AddressNormalizer(send_client).normalize_orders(orders)
        assert list(result) == ["1"]

    @pytest.mark.parametrize("error", [TransportError("timeout"), CarrierError("denied", 401)])
    def test_failure_means_no_normalization(self, send_client, make_order, error):
        send_client.normalize_addresses.side_effect = error
        assert AddressNormalizer(send_client).normalize_orders([make_order()]) == {}

    def test_nothing_to_normalize(self, send_client):
        assert AddressNormalizer(send_client).normalize_orders([]) == {}
        send_client.normalize_addresses.assert_not_called()

    def test_cart(self, send_client, cleaned_address):
        cart = Cart(fields={"post_code": "101000", "city": "Moscow", "street": "Tverskaya"})
        send_client.normalize_addresses.return_value = [cleaned_address]

        address = AddressNormalizer(send_client).normalize_cart(cart)

        send_client.normalize_addresses.assert_called_once_with(["101000, Moscow, Tverskaya"])
        assert address.index == "101000"
        assert address.is_correct is True
        assert address.stringified_input == "101000, Moscow, Tverskaya"

    def test_cart_failure(self, send_client):
        send_client.normalize_addresses.side_effect = TransportError("down")
        cart = Cart(fields={"city": "Moscow"})
        assert AddressNormalizer(send_client).normalize_cart(cart) is None
