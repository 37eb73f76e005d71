"""
Sale cart tests (no database).
"""

import pytest

from furnishop.services.cart import Cart, CartError


def _add(cart, product_id=1, quantity=1, available=5, price=10000):
    return cart.add(
        product_id=product_id,
        product_code=f"P{product_id}",
        product_name=f"Product {product_id}",
        unit_price_cents=price,
        available=available,
        quantity=quantity,
    )


class TestCart:

    def test_line_total_and_subtotal(self):
        cart = Cart()
        _add(cart, 1, quantity=2, price=15000)
        _add(cart, 2, quantity=1, price=5000)
        assert [line.total_price_cents for line in cart.lines] == [30000, 5000]
        assert cart.subtotal_cents == 35000

    def test_duplicates_merge_for_cash_sales(self):
        cart = Cart(merge_duplicates=True)
        _add(cart, 1, quantity=2)
        line = _add(cart, 1, quantity=1)
        assert len(cart.lines) == 1
        assert line.quantity == 3
        assert line.total_price_cents == 30000

    def test_duplicates_rejected_for_contracts(self):
        cart = Cart(merge_duplicates=False)
        _add(cart, 1)
        with pytest.raises(CartError, match="already in the cart"):
            _add(cart, 1)

    def test_merge_respects_stock(self):
        cart = Cart()
        _add(cart, 1, quantity=4, available=5)
        with pytest.raises(CartError, match="Insufficient stock"):
            _add(cart, 1, quantity=2, available=5)
        assert cart.lines[0].quantity == 4

    def test_quantity_above_stock_rejected(self):
        with pytest.raises(CartError, match="Insufficient stock"):
            _add(Cart(), 1, quantity=6, available=5)

    def test_out_of_stock_product_rejected(self):
        with pytest.raises(CartError):
            _add(Cart(), 1, quantity=1, available=0)

    def test_change_quantity_bounds(self):
        cart = Cart()
        _add(cart, 1, quantity=1, available=2)
        with pytest.raises(CartError, match="at least 1"):
            cart.change_quantity(1, -1)
        assert cart.change_quantity(1, +1).quantity == 2
        with pytest.raises(CartError):
            cart.change_quantity(1, +1)

    def test_remove_and_empty(self):
        cart = Cart()
        _add(cart, 1)
        cart.remove(1)
        assert cart.is_empty
        assert cart.subtotal_cents == 0
        with pytest.raises(CartError, match="not in the cart"):
            cart.remove(1)

    def test_to_dict(self):
        cart = Cart()
        _add(cart, 7, quantity=2, price=2500)
        data = cart.to_dict()
        assert data["subtotal_cents"] == 5000
        assert data["lines"][0]["product_code"] == "P7"
        assert data["lines"][0]["available"] == 5
