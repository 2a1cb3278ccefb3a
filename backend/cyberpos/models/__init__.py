from .tariffs import Tariff, TariffRange
from .stations import Station, StationSession, SessionItem
from .inventory import Product
from .customers import Customer, LoyaltyTransaction
from .sales import Sale, SaleItem
from .registers import CashCut, Expense

__all__ = [
    'Tariff', 'TariffRange',
    'Station', 'StationSession', 'SessionItem',
    'Product',
    'Customer', 'LoyaltyTransaction',
    'Sale', 'SaleItem',
    'CashCut', 'Expense',
]
