"""Page 3: Roster — Browse and search imported students."""

import streamlit as st
import plotly.express as px
import polars as pl

from drais.state import get_roster, load_roster_frame

st.set_page_config(page_title="Roster", layout="wide")
st.title("Student Roster")

roster = get_roster()
students = load_roster_frame()

if len(students) == 0:
    st.info("The roster is empty. Use **Import Students** to add students.")
    st.stop()

query = st.text_input("Search by name, phone or class", placeholder="e.g. Jane, 25670, P5")
class_options = ["All classes"] + sorted(roster.class_codes())
selected_class = st.selectbox("Class", class_options)

results = roster.search(query)
if selected_class != "All classes":
    results = results.filter(pl.col("class") == selected_class)

st.write(f"**{len(results):,} students**")
st.dataframe(results.sort(["class", "name"]).to_pandas(), width="stretch", hide_index=True)

st.divider()
st.subheader("Students per Class")
counts = roster.class_counts().to_pandas()
fig = px.bar(counts, x="class", y="students", title="Enrollment by Class")
fig.update_layout(height=350)
st.plotly_chart(fig, width="stretch")
