"""Supabase-backed entity services"""

from .admin import AdminService
from .auth import AuthService
from .base import BaseService
from .customers import CustomerService
from .dashboard import DashboardService
from .garments import GarmentService, latest_sizes_by_type
from .orders import OrderService, map_status_to_display_status

__all__ = [
    'AdminService',
    'AuthService',
    'BaseService',
    'CustomerService',
    'DashboardService',
    'GarmentService',
    'OrderService',
    'latest_sizes_by_type',
    'map_status_to_display_status',
]
