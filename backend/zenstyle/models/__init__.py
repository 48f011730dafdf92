from .staff import Staff, StaffPayment
from .clients import Client, ClientPayment
from .inventory import Service, Product, Supplier, SupplierPayment, PurchaseOrder, PurchaseOrderItem
from .appointments import Appointment, AppointmentService
from .sales import Transaction, TransactionItem
from .expenses import Expense
from .settings import AppSetting

__all__ = [
    'Staff', 'StaffPayment',
    'Client', 'ClientPayment',
    'Service', 'Product', 'Supplier', 'SupplierPayment', 'PurchaseOrder', 'PurchaseOrderItem',
    'Appointment', 'AppointmentService',
    'Transaction', 'TransactionItem',
    'Expense',
    'AppSetting',
]
