"""Main entry point for Streamlit multi-page app.

This file enables Streamlit's automatic page discovery.
Pages in the pages/ directory will automatically appear in the sidebar.
"""

from __future__ import annotations

import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent.resolve()
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import streamlit as st

from family_budget.pages.lib.budgets import load_saved_allocations
from family_budget.pages.lib.common import format_currency


def main() -> None:
    st.set_page_config(page_title="Family Budget", page_icon="🎯", layout="wide")
    st.title("Family Budget")
    st.write("Open **Budget Meta** in the sidebar to build or adjust a household budget.")

    saved = load_saved_allocations()
    if not saved:
        st.info("No saved budgets yet.")
        return
    st.subheader("Saved budgets")
    for name, entry in sorted(saved.items()):
        allocation = entry['allocation']
        label = "adjusted" if entry['adjusted'] else "accepted as proposed"
        st.write(f"**{name}**: {format_currency(allocation.income)} ({label})")


if __name__ == "__main__":
    main()
