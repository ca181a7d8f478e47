"""Screen state over the services: loading, error and the last fetched data"""

from .auth import AuthStore
from .base import BaseStore, ListStore
from .customers import CustomerListStore, CustomerStore
from .dashboard import DashboardStore
from .garments import GarmentCategoryStore, GarmentListStore, MemberGarmentStore, MemberSizeStore
from .orders import OrderListStore, OrderStore

__all__ = [
    'AuthStore',
    'BaseStore',
    'CustomerListStore',
    'CustomerStore',
    'DashboardStore',
    'GarmentCategoryStore',
    'GarmentListStore',
    'ListStore',
    'MemberGarmentStore',
    'MemberSizeStore',
    'OrderListStore',
    'OrderStore',
]
