# app.py
# -----------------------------------------------
# ⏱️ Weekly timelog viewer (Streamlit)
# -----------------------------------------------
# Requires: streamlit, pandas, reportlab
# Run: streamlit run app.py

from pathlib import Path

import streamlit as st

from repository import TimelogRepository, TimelogUnavailable, default_timelog_path, load_text
from services import EXPECTED_DAILY_H, WorkHoursCalculator, iter_weeks
from timelog import TimelogError, iter_entries
from utils import (
    format_duration, render_week, summaries_to_pdf,
    weekly_totals_dataframe, weeks_to_dataframe,
)

APP_TITLE = "Weekly timelog"

st.set_page_config(page_title=APP_TITLE, page_icon="⏱️", layout="centered")
st.title(f"⏱️ {APP_TITLE}")
st.caption("Worked time per ISO week. Entries ending in ** are not counted as work.")

# =========================
# Source
# =========================
try:
    default_path = str(default_timelog_path())
except TimelogUnavailable:
    default_path = ""

path_str = st.text_input("Timelog file", value=default_path)
uploaded = st.file_uploader("…or upload a timelog", type=["txt"])
expected_h = st.number_input("Expected hours per day", min_value=0.0, max_value=24.0,
                             step=0.5, value=EXPECTED_DAILY_H)

def read_lines():
    if uploaded is not None:
        return load_text(uploaded.getvalue()), uploaded.name
    repo = TimelogRepository(path_str or None)
    return repo.iter_lines(), repo.path.name

try:
    lines, source_name = read_lines()
except TimelogUnavailable as e:
    st.error(str(e))
    st.stop()

calc = WorkHoursCalculator(daily_threshold=expected_h)
try:
    summaries = [calc.summarize(w) for w in iter_weeks(iter_entries(lines))]
except TimelogError as e:
    st.error(f"Corrupt timelog ({source_name}): {e}")
    st.stop()
except TimelogUnavailable as e:
    st.error(str(e))
    st.stop()

if not summaries:
    st.info("No entries in this timelog.")
    st.stop()

# =========================
# 📅 Weekly summary
# =========================
st.subheader("📅 Weekly summary")
for s in reversed(summaries):
    label = "Over" if s.is_over else "Under"
    with st.expander(f"{s.year} week {s.iso_week:02d} · {format_duration(s.total)}", expanded=False):
        for day, worked in s.days:
            st.markdown(f"- **{day.isoformat()}**: {format_duration(worked)}")
        st.markdown(f"- **Daily average**: {format_duration(s.daily_average)}")
        st.markdown(f"- **Expected**: {format_duration(s.expected)}")
        st.markdown(f"- **{label}**: {format_duration(s.balance)}")
        st.code("\n".join(render_week(s)), language=None)

st.subheader("Weeks")
st.dataframe(weekly_totals_dataframe(summaries), use_container_width=True, hide_index=True)

st.subheader("Days")
df_days = weeks_to_dataframe(summaries)
st.dataframe(df_days, use_container_width=True, hide_index=True)

# =========================
# ⬇️ Downloads
# =========================
st.subheader("⬇️ Downloads")
stem = Path(source_name).stem
st.download_button(
    "Download CSV",
    data=df_days.to_csv(index=False).encode("utf-8"),
    file_name=f"{stem}_days.csv",
    mime="text/csv",
    use_container_width=True,
)
pdf_bytes = summaries_to_pdf(summaries, title=f"{APP_TITLE}: {source_name}")
st.download_button(
    "Download PDF",
    data=pdf_bytes,
    file_name=f"{stem}_weekly.pdf",
    mime="application/pdf",
    use_container_width=True,
)
