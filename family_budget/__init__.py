"""Top-level package for the family budget engine.

The engine turns a household's income band and profile into a
percentage-based monthly budget, lets the user move money between
categories under a zero-sum constraint against the ``IF`` buffer line and
keeps category totals consistent with user-defined subcategories. The
modules live under ``pages/lib/budgets``; reference data is JSON under
``pages/config``.

To run the onboarding app from the command line you can execute:

```bash
streamlit run family_budget/Home.py
```
"""

from . import config  # noqa: F401  # re-exported for convenience

__all__ = ["config"]
