import pandas as pd
import streamlit as st

from .config import PUBLISHED_PREFIX, REQUIRED_SHEETS
from .store import SheetContext


def peek_tabs(ctx: SheetContext) -> list[str]:
    """Data tabs first, then published weeks newest-first."""
    titles = ctx.titles()
    data = [t for t in REQUIRED_SHEETS if t in titles]
    published = sorted((t for t in titles if t.startswith(PUBLISHED_PREFIX)), reverse=True)
    return data + published


def peek_exact(ctx: SheetContext):
    # Creates its own expander; don't wrap it in another one.
    with st.expander("Peek (exactly as in sheet)"):
        tabs = peek_tabs(ctx)
        if not tabs:
            st.info("No sheets found.")
            return
        tab = st.selectbox("Sheet", tabs, index=0, key="peek_tab_raw")
        max_rows = st.number_input("Max rows to show (0 = all)", min_value=0, value=0, step=1, key="peek_rows_raw")

        ws = ctx.find(tab)
        header = REQUIRED_SHEETS.get(tab)
        body = ctx.rows(tab)
        if max_rows and max_rows > 0:
            body = body[:max_rows]
        if not body:
            st.info("This sheet is empty.")
            return
        if header:
            df = pd.DataFrame(body, columns=header)
        else:
            df = pd.DataFrame(body)
        st.caption(f"{ws.title if ws is not None else tab}: {len(body)} row(s)")
        st.dataframe(df, height=520, use_container_width=True)
