"""Multi-step creation flows"""

from .base import MemberDraft, SizeEntry, parse_role, parse_size_type
from .member_addition import MemberAdditionWizard, MemberWizardStep
from .order_creation import OrderCreationWizard, OrderWizardStep
from .outfit import REQUIRED_CATEGORIES, OutfitSelection, SelectedGarment

__all__ = [
    'MemberAdditionWizard',
    'MemberDraft',
    'MemberWizardStep',
    'OrderCreationWizard',
    'OrderWizardStep',
    'OutfitSelection',
    'REQUIRED_CATEGORIES',
    'SelectedGarment',
    'SizeEntry',
    'parse_role',
    'parse_size_type',
]
