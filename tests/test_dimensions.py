"""Tests for size classes and weight/dimension resolution."""

from itertools import permutations

import pytest

from post_fulfillment.dimensions import WeightDimensionResolver, classify_dimensions
from post_fulfillment.models import Cart, OrderItem


class TestClassifyDimensions:
    """Test the package size classifier."""

    @pytest.mark.parametrize(
        "sizes, expected",
        [
            ((50, 60, 70), "S"),
            ((260, 170, 80), "S"),
            ((100, 100, 100), "M"),
            ((100, 150, 170), "L"),
            ((100, 200, 210), "XL"),
            ((100, 200, 300), "OVERSIZED"),
        ],
    )
    def test_size_classes(self, sizes, expected):
        assert classify_dimensions(*sizes) == expected

    @pytest.mark.parametrize("sizes", [(50, 60, 70), (100, 150, 170), (100, 200, 210)])
    def test_order_of_measurements_is_irrelevant(self, sizes):
        results = {classify_dimensions(*p) for p in permutations(sizes)}
        assert len(results) == 1

    @pytest.mark.parametrize("sizes", [(531, 261, 221), (1000, 1000, 1000), (221, 531, 261)])
    def test_beyond_largest_class_is_oversized(self, sizes):
        assert classify_dimensions(*sizes) == "OVERSIZED"

    def test_boundaries_are_inclusive(self):
        assert classify_dimensions(80, 170, 260) != "S"  # largest side checked against 80
        assert classify_dimensions(220, 260, 530) == "OVERSIZED"
        assert classify_dimensions(10, 10, 80) == "S"
        assert classify_dimensions(10, 10, 81) == "M"


class TestWeight:
    """Test order and cart weight resolution."""

    def test_items_below_default_are_raised_to_default(self, settings, make_order):
        order = make_order(
            items=[
                OrderItem("1", amount=2, fields={"weight": 0}),
                OrderItem("2", amount=1, fields={"weight": 0.5}),
                OrderItem("3", amount=3, fields={}),
            ]
        )
        resolver = WeightDimensionResolver(settings)
        assert resolver.weight(order) == pytest.approx(1.0)

    def test_explicit_order_weight_wins(self, settings, make_order):
        order = make_order(
            fields={"weight": "2.5"},
            items=[OrderItem("1", amount=10, fields={"weight": 3})],
        )
        assert WeightDimensionResolver(settings).weight(order) == pytest.approx(2.5)

    def test_ratio_applies_to_fallback(self, settings):
        settings.weight_ratio = 1000
        settings.default_weight = 1.5
        cart = Cart(sum=100, items=[])
        assert WeightDimensionResolver(settings).weight(cart) == pytest.approx(1500)

    def test_ratio_applies_to_explicit_weight(self, settings, make_order):
        settings.weight_ratio = 0.001
        order = make_order(fields={"weight": 2000})
        assert WeightDimensionResolver(settings).weight(order) == pytest.approx(2.0)

    def test_cart_items_are_summed(self, settings):
        cart = Cart(
            sum=100,
            items=[
                OrderItem("1", amount=2, fields={"weight": "0,25"}),
                OrderItem("2", amount=1, fields={"weight": 1}),
            ],
        )
        assert WeightDimensionResolver(settings).weight(cart) == pytest.approx(1.5)


class TestDimension:
    """Test package dimension resolution."""

    def test_explicit_dimension(self, settings, make_order):
        order = make_order(fields={"length": 15})
        assert WeightDimensionResolver(settings).dimension(order, "length") == 150

    def test_single_item_dimension(self, settings, make_order):
        order = make_order(items=[OrderItem("1", amount=3, fields={"width": 30})])
        assert WeightDimensionResolver(settings).dimension(order, "width") == 300

    def test_single_item_without_dimension_uses_item_default(self, settings, make_order):
        order = make_order(items=[OrderItem("1")])
        assert WeightDimensionResolver(settings).dimension(order, "height") == 100

    def test_several_items_use_order_default(self, settings, make_order):
        order = make_order(
            items=[
                OrderItem("1", fields={"length": 5}),
                OrderItem("2", fields={"length": 50}),
            ]
        )
        assert WeightDimensionResolver(settings).dimension(order, "length") == 200

    def test_no_items_use_order_default(self, settings):
        resolver = WeightDimensionResolver(settings)
        assert resolver.dimensions(Cart()) == {"length": 200, "width": 200, "height": 200}

    def test_unknown_dimension(self, settings):
        with pytest.raises(ValueError):
            WeightDimensionResolver(settings).dimension(Cart(), "depth")
