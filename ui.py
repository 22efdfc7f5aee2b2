import os

import streamlit as st

STYLES_PATH = os.path.join(os.path.dirname(__file__), "assets", "styles.css")


def inject_css(path: str = STYLES_PATH):
    if not os.path.exists(path):
        return
    with open(path, "r", encoding="utf-8") as f:
        st.markdown(f"<style>{f.read()}</style>", unsafe_allow_html=True)


def app_header(title: str, subtitle: str = ""):
    cols = st.columns([6, 2])
    with cols[0]:
        st.markdown(f"## {title}")
        if subtitle:
            st.caption(subtitle)
    with cols[1]:
        st.markdown(
            "<div class='badge'>Year by year</div> "
            "<div class='badge'>UK tax</div> "
            "<div class='badge'>Fee benchmark</div>",
            unsafe_allow_html=True,
        )


def small_help(text: str):
    st.caption(text)


def kpi_card(col, caption: str, value: str, note: str = ""):
    note_html = f"<div class='caption'>{note}</div>" if note else ""
    col.markdown(
        f"<div class='card'><div class='caption'>{caption}</div>"
        f"<div class='kpi'>{value}</div>{note_html}</div>",
        unsafe_allow_html=True,
    )
