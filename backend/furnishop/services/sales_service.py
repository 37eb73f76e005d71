"""
Cash sales.

A sale is committed in one call: the cart is checked against branch stock,
then header, lines and one `out` movement per line are written in the same
transaction. Either the whole sale exists or none of it does.
"""
from __future__ import annotations

from datetime import date

from flask import current_app

from ..extensions import db
from ..models import Branch, CashSale, CashSaleItem, Customer, Product
from ..models.sales import PAYMENT_METHODS
from furnishop.time_utils import local_today
from .cart import Cart, CartError
from .concurrency import run_with_retry
from .document_service import next_document_number
from .inventory_service import InventoryError, decrease_product_stock, get_quantity_on_hand


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _parse_items(items) -> list[tuple[int, int]]:
    if not isinstance(items, list) or not items:
        raise CartError("Cart is empty")
    parsed = []
    for raw in items:
        if not isinstance(raw, dict):
            raise CartError("Each item must be an object with product_id and quantity")
        product_id = raw.get("product_id")
        quantity = raw.get("quantity", 1)
        if isinstance(product_id, bool) or not isinstance(product_id, int):
            raise CartError("product_id must be an integer")
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise CartError("quantity must be an integer")
        parsed.append((product_id, quantity))
    return parsed


def build_cart(items, *, branch_id: int, merge_duplicates: bool = True) -> Cart:
    """
    Build a cart from [{"product_id", "quantity"}] at the branch's current
    stock and the products' current prices.

    Raises CartError for unknown or inactive products, duplicates (when not
    merged) and quantities above the branch's stock.
    """
    cart = Cart(merge_duplicates=merge_duplicates)
    for product_id, quantity in _parse_items(items):
        product = db.session.get(Product, product_id)
        if product is None or not product.is_active:
            raise CartError(f"Product {product_id} not found")
        cart.add(
            product_id=product.id,
            product_code=product.code,
            product_name=product.name,
            unit_price_cents=product.price_cents,
            available=get_quantity_on_hand(product.id, branch_id),
            quantity=quantity,
        )
    return cart


def commit_cash_sale(
    *,
    branch_id: int,
    items,
    payment_method: str,
    user_id: int | None,
    customer_id: int | None = None,
    sales_person_id: int | None = None,
) -> CashSale:
    """
    Commit a cash sale at a branch.

    Writes the header (with a server-allocated sale number), the lines, and
    decreases stock for each line with an `out` movement referencing the
    sale. When a customer is attached, their purchase totals are updated.
    """
    def _op():
        if payment_method not in PAYMENT_METHODS:
            raise SaleError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")
        if db.session.get(Branch, branch_id) is None:
            raise SaleError(f"Branch {branch_id} not found")

        customer = None
        if customer_id is not None:
            customer = db.session.get(Customer, customer_id)
            if customer is None:
                raise SaleError(f"Customer {customer_id} not found")

        try:
            cart = build_cart(items, branch_id=branch_id, merge_duplicates=True)
        except CartError as exc:
            raise SaleError(str(exc)) from exc

        total = cart.subtotal_cents
        sale_date = local_today()

        sale = CashSale(
            branch_id=branch_id,
            sale_number=next_document_number(branch_id=branch_id, document_type="cash_sale"),
            customer_id=customer_id,
            sales_person_id=sales_person_id or user_id,
            cashier_id=user_id,
            subtotal_cents=total,
            discount_cents=0,
            tax_cents=0,
            total_amount_cents=total,
            payment_method=payment_method,
            payment_status="completed",
            sale_date=sale_date,
        )
        db.session.add(sale)
        db.session.flush()

        for line in cart.lines:
            db.session.add(CashSaleItem(
                cash_sale_id=sale.id,
                product_id=line.product_id,
                product_code=line.product_code,
                product_name=line.product_name,
                quantity=line.quantity,
                unit_price_cents=line.unit_price_cents,
                total_price_cents=line.total_price_cents,
            ))
            try:
                decrease_product_stock(
                    line.product_id,
                    branch_id,
                    line.quantity,
                    user_id=user_id,
                    reference_type="sale",
                    reference_id=sale.id,
                    notes=f"Cash sale {sale.sale_number}",
                )
            except InventoryError as exc:
                raise SaleError(str(exc), details={"product_id": line.product_id}) from exc

        if customer is not None:
            customer.total_purchases_cents = (customer.total_purchases_cents or 0) + total
            customer.last_purchase_date = sale_date

        db.session.flush()
        current_app.logger.info(
            "Cash sale %s committed: branch=%s lines=%d total_cents=%d",
            sale.sale_number, branch_id, len(cart.lines), total,
        )
        return sale

    return run_with_retry(_op)


def get_sale(sale_id: int) -> CashSale | None:
    return db.session.get(CashSale, sale_id)


def get_sale_receipt(sale_id: int) -> dict | None:
    """Header, lines, customer and branch in one payload for printing."""
    sale = db.session.get(CashSale, sale_id)
    if sale is None:
        return None
    return {
        **sale.to_dict(),
        "items": [item.to_dict() for item in sale.items],
        "customer": sale.customer.to_dict() if sale.customer else None,
        "branch": sale.branch.to_dict() if sale.branch else None,
    }


def list_sales(
    *,
    branch_id: int | None = None,
    start: date | None = None,
    end: date | None = None,
    limit: int = 100,
) -> list[CashSale]:
    q = db.session.query(CashSale)
    if branch_id is not None:
        q = q.filter(CashSale.branch_id == branch_id)
    if start is not None:
        q = q.filter(CashSale.sale_date >= start)
    if end is not None:
        q = q.filter(CashSale.sale_date <= end)
    limit = max(1, min(limit, 500))
    return q.order_by(CashSale.created_at.desc(), CashSale.id.desc()).limit(limit).all()
