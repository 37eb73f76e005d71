"""
Sale cart shared by the cash sale and contract screens.

A cart is built against a stock snapshot: each line remembers how many
units the branch held when the product was added, and quantity changes are
checked against that snapshot. The authoritative check happens again when
stock is decreased at commit time.
"""
from __future__ import annotations

from dataclasses import dataclass, field


class CartError(ValueError):
    """Raised when a cart change would break a cart rule."""


@dataclass
class CartLine:
    product_id: int
    product_code: str
    product_name: str
    unit_price_cents: int
    available: int
    quantity: int = 1
    total_price_cents: int = 0

    def __post_init__(self) -> None:
        self._recompute()

    def _recompute(self) -> None:
        self.total_price_cents = self.quantity * self.unit_price_cents

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_code": self.product_code,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_price_cents": self.total_price_cents,
            "available": self.available,
        }


@dataclass
class Cart:
    """
    merge_duplicates=True (cash sales): adding a product already in the cart
    increases that line. False (contracts): the second add is rejected.
    """
    merge_duplicates: bool = True
    lines: list[CartLine] = field(default_factory=list)

    def _find(self, product_id: int) -> CartLine | None:
        for line in self.lines:
            if line.product_id == product_id:
                return line
        return None

    def _line(self, product_id: int) -> CartLine:
        line = self._find(product_id)
        if line is None:
            raise CartError(f"Product {product_id} is not in the cart")
        return line

    @staticmethod
    def _check_quantity(line: CartLine, quantity: int) -> None:
        if quantity < 1:
            raise CartError("quantity must be at least 1")
        if quantity > line.available:
            raise CartError(
                f"Insufficient stock for {line.product_name}: {line.available} available, {quantity} requested"
            )

    def add(
        self,
        *,
        product_id: int,
        product_code: str,
        product_name: str,
        unit_price_cents: int,
        available: int,
        quantity: int = 1,
    ) -> CartLine:
        if unit_price_cents < 0:
            raise CartError("unit_price_cents must be >= 0")

        existing = self._find(product_id)
        if existing is not None:
            if not self.merge_duplicates:
                raise CartError(f"{product_name} is already in the cart")
            self._check_quantity(existing, existing.quantity + quantity)
            existing.quantity += quantity
            existing._recompute()
            return existing

        line = CartLine(
            product_id=product_id,
            product_code=product_code,
            product_name=product_name,
            unit_price_cents=unit_price_cents,
            available=available,
            quantity=quantity,
        )
        self._check_quantity(line, quantity)
        self.lines.append(line)
        return line

    def change_quantity(self, product_id: int, delta: int) -> CartLine:
        """+1 / -1 buttons: never below 1, never above the stock snapshot."""
        line = self._line(product_id)
        return self.set_quantity(product_id, line.quantity + delta)

    def set_quantity(self, product_id: int, quantity: int) -> CartLine:
        line = self._line(product_id)
        self._check_quantity(line, quantity)
        line.quantity = quantity
        line._recompute()
        return line

    def remove(self, product_id: int) -> None:
        self.lines.remove(self._line(product_id))

    @property
    def subtotal_cents(self) -> int:
        return sum(line.total_price_cents for line in self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def to_dict(self) -> dict:
        return {
            "lines": [line.to_dict() for line in self.lines],
            "subtotal_cents": self.subtotal_cents,
        }
