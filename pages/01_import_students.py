"""Page 1: Import Students — Upload, map, review and import a roster file."""

import streamlit as st
import polars as pl

from drais.ingest.schema import build_template, list_fields
from drais.ingest.validator import summarize
from drais.ingest.wizard import WizardStep
from drais.state import get_wizard, reset_wizard

st.set_page_config(page_title="Import Students", layout="wide")
st.title("Import Students from Excel")
st.markdown("Upload your student data from Excel or CSV files with automated column mapping and validation.")

wizard = get_wizard()
session = wizard.session
upload_key = st.session_state.get("upload_key", 0)

# Stepper
step_cols = st.columns(len(WizardStep))
for col, step in zip(step_cols, WizardStep):
    if step < wizard.step:
        marker = "✅"
    elif step == wizard.step:
        marker = "🔵"
    else:
        marker = "⚪"
    with col:
        st.markdown(f"{marker} **{step.value}. {step.title}**  \n{step.description}")

st.divider()

if session.error:
    st.error(session.error)

# --- Step 1: Upload ---------------------------------------------------------
if wizard.step is WizardStep.UPLOAD:
    col1, col2 = st.columns([2, 1])
    with col1:
        uploaded = st.file_uploader(
            "Drop your Excel or CSV file here",
            type=["xlsx", "xls", "csv"],
            key=f"upload_{upload_key}",
        )
    with col2:
        st.subheader("Need a template?")
        st.write("Use our template so every column maps automatically.")
        st.download_button(
            "Download Excel template",
            data=build_template("xlsx", include_samples=True),
            file_name="student_import_template.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )
        st.download_button(
            "Download CSV template",
            data=build_template("csv", include_samples=True),
            file_name="student_import_template.csv",
            mime="text/csv",
        )

    # A rejected upload stays on the session; don't retry it every rerun
    if uploaded is not None and wizard.is_new_upload(uploaded.file_id):
        with st.spinner("Reading file..."):
            wizard.load_file(uploaded, uploaded.name, uploaded.file_id)
        st.rerun()

# --- Step 2: Map columns ----------------------------------------------------
elif wizard.step is WizardStep.MAP:
    st.subheader("Map Columns")
    st.write(f"**{session.file_name}** — {len(session.rows):,} rows, {len(session.headers)} columns")

    options = [""] + session.headers
    mapping = session.mapper.mapping
    for f in list_fields():
        current = mapping.get(f.key, "")
        label = f"{f.label} *" if f.required else f.label
        choice = st.selectbox(
            label,
            options,
            index=options.index(current),
            format_func=lambda c: c or "— not mapped —",
            key=f"map_{upload_key}_{f.key}",
        )
        if choice != current:
            wizard.set_mapping(f.key, choice)
            st.rerun()

    st.markdown("**Preview**")
    st.dataframe(pl.DataFrame(wizard.preview()).to_pandas(), width="stretch")

    reason = wizard.blocking_reason()
    if reason is not None:
        st.warning(reason[1])

    c1, c2, _ = st.columns([1, 1, 4])
    with c1:
        if st.button("Choose another file"):
            reset_wizard()
            st.rerun()
    with c2:
        if st.button("Validate Data", type="primary", disabled=not wizard.can_advance()):
            wizard.advance()
            st.rerun()

# --- Step 3: Review ---------------------------------------------------------
elif wizard.step is WizardStep.REVIEW:
    st.subheader("Review Data")
    issues = session.issues
    bad_rows = {i.row_index for i in issues}

    c1, c2, c3 = st.columns(3)
    with c1:
        st.metric("Total Rows", f"{len(session.records):,}")
    with c2:
        st.metric("Valid Rows", f"{len(session.records) - len(bad_rows):,}")
    with c3:
        st.metric("Issues", f"{len(issues):,}")

    if issues:
        counts = summarize(issues)
        st.error(
            "Fix these problems in your file and upload it again, or adjust the column mapping: "
            + ", ".join(f"{kind.value} × {n}" for kind, n in counts.items())
        )
        issue_df = pl.DataFrame(
            [
                {"Row": i.sheet_row, "Field": i.field, "Problem": i.kind.value, "Message": i.message}
                for i in issues
            ]
        )
        st.dataframe(issue_df.to_pandas(), width="stretch", hide_index=True)
    else:
        st.success(f"All {len(session.records):,} rows passed validation.")

    st.markdown("**Preview**")
    st.dataframe(pl.DataFrame(wizard.preview()).to_pandas(), width="stretch")

    c1, c2, c3, _ = st.columns([1, 1, 1, 3])
    with c1:
        if st.button("Back"):
            wizard.back()
            st.rerun()
    with c2:
        if st.button("Re-run validation"):
            wizard.validate()
            st.rerun()
    with c3:
        if st.button("Start Import", type="primary", disabled=not wizard.can_advance()):
            wizard.advance()
            st.rerun()

# --- Step 4: Import ---------------------------------------------------------
else:
    st.subheader("Import")

    if not wizard.is_import_finished:
        st.info("Importing students. Please stay on this page until the import finishes.")
        bar = st.progress(0, text="Starting import...")
        for progress in wizard.run_import():
            bar.progress(progress.percent, text=f"Importing... {progress.percent}%")
        st.rerun()

    tally = session.tally
    if tally.cancelled:
        st.warning("The import was interrupted. No students were added.")
    elif tally.failed:
        st.warning(f"Import completed: {tally.summary()}.")
        error_df = pl.DataFrame(
            [{"Row": e.row_index + 2, "Message": e.message} for e in tally.errors]
        )
        st.dataframe(error_df.to_pandas(), width="stretch", hide_index=True)
    else:
        st.progress(100, text="Done")
        st.success(f"Import completed: {tally.succeeded:,} students imported.")

    if session.import_log_id is not None:
        st.caption(f"Recorded as import #{session.import_log_id} in Import History.")

    if st.button("Import More", type="primary"):
        reset_wizard()
        st.rerun()
