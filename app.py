"""Streamlit entry point for the DRAIS student roster import tool."""

import streamlit as st

st.set_page_config(
    page_title="DRAIS Student Import",
    page_icon="🎓",
    layout="wide",
    initial_sidebar_state="expanded",
)

from drais.state import get_config, get_import_log, load_roster_frame

st.title("DRAIS Student Roster")
st.markdown("**Bring your school's student list in from Excel or CSV**")

# Sidebar info
with st.sidebar:
    st.header("School Setup")
    config = get_config()
    ic = config.import_config
    st.write(f"**{len(ic.valid_classes)} classes:** {', '.join(ic.valid_classes)}")
    st.write(f"**Accepted files:** {', '.join(ic.accepted_extensions)}")
    st.write(f"**Data folder:** `{config.data_dir}`")

try:
    students = load_roster_frame()
    import_log = get_import_log()

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Students", f"{len(students):,}")
    with col2:
        st.metric("Classes in Use", f"{students['class'].n_unique():,}" if len(students) else "0")
    with col3:
        st.metric("Imports", f"{len(import_log):,}")
    with col4:
        entries = import_log.entries()
        last_status = entries["status"][0] if len(entries) else "N/A"
        st.metric("Last Import", last_status)

    st.divider()
    st.markdown("""
    ### Getting Started

    Use the sidebar to move between pages:

    1. **Import Students** — Upload a file, map its columns, review and import
    2. **Import History** — Every import with its imported and failed rows
    3. **Roster** — Search the students already on file
    """)

except Exception as e:
    st.error(f"Could not load roster: {e}")
    st.exception(e)
