"""Configuration dataclasses for the DRAIS student import tool."""

from dataclasses import dataclass, field
from pathlib import Path


def _default_classes() -> list[str]:
    return [f"P{i}" for i in range(1, 8)] + [f"S{i}" for i in range(1, 7)]


@dataclass
class ImportConfig:
    """Rules and tuning for a single roster import."""
    accepted_extensions: tuple[str, ...] = (".xlsx", ".xls", ".csv")
    allowed_genders: list[str] = field(default_factory=lambda: ["Male", "Female"])
    # Digits only after normalization, optional "+", room for a country code
    phone_pattern: str = r"^\+?\d{10,13}$"
    valid_classes: list[str] = field(default_factory=_default_classes)
    detect_duplicates: bool = True
    commit_batch_size: int = 10
    commit_tick_seconds: float = 0.2
    preview_rows: int = 5


@dataclass
class AppConfig:
    """Top-level application configuration."""
    project_root: Path = field(default_factory=lambda: Path(__file__).resolve().parent.parent)
    data_dir: Path = field(default=None)
    log_level: str = "INFO"
    import_config: ImportConfig = field(default_factory=ImportConfig)

    # Persisted file names
    roster_file: str = "students.parquet"
    import_log_file: str = "import_log.parquet"

    def __post_init__(self):
        if self.data_dir is None:
            self.data_dir = self.project_root / "data"
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def data_path(self, filename: str) -> Path:
        return self.data_dir / filename
