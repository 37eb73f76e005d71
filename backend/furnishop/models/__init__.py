from .branches import Branch, DocumentSequence
from .auth import User, SessionToken
from .inventory import Product, InventoryMovement, ProductTransfer
from .customers import Customer, CustomerImage
from .sales import CashSale, CashSaleItem
from .hire_purchase import HirePurchaseContract, HirePurchaseItem, InstallmentPayment, InstallmentReceipt
from .accounting import BranchExpense

__all__ = [
    'Branch', 'DocumentSequence',
    'User', 'SessionToken',
    'Product', 'InventoryMovement', 'ProductTransfer',
    'Customer', 'CustomerImage',
    'CashSale', 'CashSaleItem',
    'HirePurchaseContract', 'HirePurchaseItem', 'InstallmentPayment', 'InstallmentReceipt',
    'BranchExpense',
]
