"""Streamlit session state management and data loaders."""

from pathlib import Path

import streamlit as st
import polars as pl

from drais.config import AppConfig
from drais.ingest.wizard import WizardController
from drais.logging_config import configure_logging
from drais.roster.import_log import ImportLog
from drais.roster.store import RosterStore


def get_config() -> AppConfig:
    """Get or create the AppConfig singleton."""
    if "config" not in st.session_state:
        config = AppConfig()
        configure_logging(config.log_level)
        st.session_state.config = config
    return st.session_state.config


@st.cache_resource
def _open_roster(path: str, class_codes: tuple[str, ...], genders: tuple[str, ...]) -> RosterStore:
    return RosterStore(Path(path), class_codes=class_codes, allowed_genders=genders)


@st.cache_resource
def _open_import_log(path: str) -> ImportLog:
    return ImportLog(Path(path))


def get_roster() -> RosterStore:
    """Shared roster store, opened once per server process."""
    config = get_config()
    ic = config.import_config
    return _open_roster(
        str(config.data_path(config.roster_file)),
        tuple(ic.valid_classes),
        tuple(ic.allowed_genders),
    )


def get_import_log() -> ImportLog:
    config = get_config()
    return _open_import_log(str(config.data_path(config.import_log_file)))


def get_wizard() -> WizardController:
    """The one import wizard for this browser session."""
    if "wizard" not in st.session_state:
        config = get_config()
        st.session_state.wizard = WizardController(
            config.import_config, get_roster(), get_import_log(),
        )
    return st.session_state.wizard


def reset_wizard() -> bool:
    """Start a fresh import ("Import More"). False while an import is running."""
    wizard = get_wizard()
    if not wizard.reset():
        return False
    st.session_state.upload_key = st.session_state.get("upload_key", 0) + 1
    return True


@st.cache_data(show_spinner=False)
def _roster_frame(version: int, path: str) -> pl.DataFrame:
    return get_roster().students()


def load_roster_frame() -> pl.DataFrame:
    """Roster as a DataFrame, re-read only when the roster has changed."""
    roster = get_roster()
    config = get_config()
    return _roster_frame(roster.version, str(config.data_path(config.roster_file)))
