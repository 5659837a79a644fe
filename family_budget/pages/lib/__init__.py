"""Page library modules for shared utilities and page-specific functions.

Structure:
    - common/: Shared formatting and file helpers
    - budgets/: Budget generation, editing, reconciliation and storage
"""

__all__ = ['common', 'budgets']
