"""Budget allocation and reconciliation engine.

This module provides all budget-related functionality including:
- Income band catalog and base percentage table
- Generation pipeline from onboarding answers to a proposed allocation
- Zero-sum editing of categories against the IF buffer
- Subcategory reconciliation and the pre-commit validation gate
- Onboarding session, allocation storage and analytics frames
"""

from .errors import (
    BudgetEngineError,
    CatalogError,
    AllocationError,
    UnknownPrefixError,
    UnknownSubcategoryError,
    SessionStateError,
    RejectionReason,
    ErrorKind,
    WarningKind,
)
from .catalog import (
    PrefixCode,
    BUFFER_CODE,
    Catalog,
    get_catalog,
    get_band,
    get_sub_band,
    find_band_for_income,
    get_prefix_config,
    budgetable_prefixes,
    calculate_budget_amounts,
    subcategory_distribution,
)
from .models import (
    Allocation,
    BudgetCategoryItem,
    SubcategoryBudget,
    derive_amount,
)
from .pipeline import (
    OnboardingProfile,
    BudgetProposal,
    build_proposal,
    generate,
    redistribute_proportionally,
    redistribute_by_mode_priority,
    REDISTRIBUTION_POLICIES,
)
from .allocation import (
    EditResult,
    apply_percentage_change,
    apply_amount_change,
    max_percentage,
    buffer_status,
    is_buffer_exhausted,
)
from .reconciler import (
    ReconcileReport,
    reconcile_status,
    reconcile_all,
    set_subcategories,
    shrink_category_to_match,
    grow_category_to_match,
    update_subcategory_amount,
    seed_subcategories,
)
from .validation import ValidationResult, validate
from .session import OnboardingSession, Stage
from .storage import (
    AllocationStorage,
    load_saved_allocations,
    save_allocation,
    delete_allocation,
    get_allocation_path,
)
from .calculations import (
    allocation_frame,
    top_categories,
    allocation_summary,
)

__all__ = [
    # Errors
    'BudgetEngineError',
    'CatalogError',
    'AllocationError',
    'UnknownPrefixError',
    'UnknownSubcategoryError',
    'SessionStateError',
    'RejectionReason',
    'ErrorKind',
    'WarningKind',
    # Catalog
    'PrefixCode',
    'BUFFER_CODE',
    'Catalog',
    'get_catalog',
    'get_band',
    'get_sub_band',
    'find_band_for_income',
    'get_prefix_config',
    'budgetable_prefixes',
    'calculate_budget_amounts',
    'subcategory_distribution',
    # Models
    'Allocation',
    'BudgetCategoryItem',
    'SubcategoryBudget',
    'derive_amount',
    # Pipeline
    'OnboardingProfile',
    'BudgetProposal',
    'build_proposal',
    'generate',
    'redistribute_proportionally',
    'redistribute_by_mode_priority',
    'REDISTRIBUTION_POLICIES',
    # Controller
    'EditResult',
    'apply_percentage_change',
    'apply_amount_change',
    'max_percentage',
    'buffer_status',
    'is_buffer_exhausted',
    # Reconciler
    'ReconcileReport',
    'reconcile_status',
    'reconcile_all',
    'set_subcategories',
    'shrink_category_to_match',
    'grow_category_to_match',
    'update_subcategory_amount',
    'seed_subcategories',
    # Validation
    'ValidationResult',
    'validate',
    # Session
    'OnboardingSession',
    'Stage',
    # Storage
    'AllocationStorage',
    'load_saved_allocations',
    'save_allocation',
    'delete_allocation',
    'get_allocation_path',
    # Calculations
    'allocation_frame',
    'top_categories',
    'allocation_summary',
]
