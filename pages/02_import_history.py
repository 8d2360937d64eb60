"""Page 2: Import History — Audit trail of roster imports."""

import streamlit as st
import plotly.express as px
import polars as pl

from drais.state import get_import_log

st.set_page_config(page_title="Import History", layout="wide")
st.title("Import History")

import_log = get_import_log()
entries = import_log.entries()

if len(entries) == 0:
    st.info("No imports yet. Use **Import Students** to add a roster file.")
    st.stop()

c1, c2, c3 = st.columns(3)
with c1:
    st.metric("Imports", f"{len(entries):,}")
with c2:
    st.metric("Students Imported", f"{entries['succeeded'].sum():,}")
with c3:
    partial = len(entries.filter(pl.col("status") == "partial"))
    st.metric("Partial Imports", f"{partial:,}")

chart_df = (
    entries.sort("log_id")
    .select([
        pl.format("#{} {}", pl.col("log_id"), pl.col("file_name")).alias("import"),
        "succeeded",
        "failed",
    ])
    .unpivot(index="import", on=["succeeded", "failed"], variable_name="outcome", value_name="rows")
    .to_pandas()
)
fig = px.bar(chart_df, x="import", y="rows", color="outcome",
             color_discrete_map={"succeeded": "seagreen", "failed": "indianred"},
             title="Rows per Import")
fig.update_layout(height=400, xaxis_tickangle=-45)
st.plotly_chart(fig, width="stretch")

st.dataframe(
    entries.drop("errors").to_pandas(),
    width="stretch",
    hide_index=True,
)

st.divider()
st.subheader("Import Details")
log_id = st.selectbox("Select an import", entries["log_id"].to_list(),
                      format_func=lambda i: f"#{i}")
entry = import_log.get(log_id)
st.write(f"**{entry.file_name}** — {entry.status}, {entry.succeeded} of {entry.total_rows} rows imported")

errors = entry.error_list()
if errors:
    st.dataframe(pl.DataFrame(errors).to_pandas(), width="stretch", hide_index=True)
else:
    st.write("No row errors.")
