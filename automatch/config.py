"""Configuration management using Pydantic BaseSettings."""
from pathlib import Path
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable overrides."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True
    )

    # Data paths
    data_dir: Path = Field(default_factory=lambda: Path("./data"), alias="AUTOMATCH_DATA_DIR")
    out_dir: Path = Field(default_factory=lambda: Path("./out"), alias="AUTOMATCH_OUT_DIR")
    log_dir: Path = Field(default_factory=lambda: Path("./logs"), alias="AUTOMATCH_LOG_DIR")

    # Database
    db_path: Path = Field(default_factory=lambda: Path("./data/automatch.duckdb"), alias="AUTOMATCH_DB_PATH")

    # Source exports (cdes_merged and deals tables)
    cdes_path: Path = Field(default_factory=lambda: Path("./data/cdes_merged.csv"), alias="AUTOMATCH_CDES_PATH")
    deals_path: Path = Field(default_factory=lambda: Path("./data/deals.csv"), alias="AUTOMATCH_DEALS_PATH")
    header_match_threshold: float = Field(default=85.0, alias="AUTOMATCH_HEADER_MATCH_THRESHOLD")

    # Scoring
    # Allocation round used for the underserved-states lookup
    reference_year: int = Field(default=2025, alias="AUTOMATCH_REFERENCE_YEAR")
    top_n: int = Field(default=3, alias="AUTOMATCH_TOP_N")
    run_min_score: int = Field(default=0, alias="AUTOMATCH_RUN_MIN_SCORE")
    scan_min_score: int = Field(default=70, alias="AUTOMATCH_SCAN_MIN_SCORE")
    max_results: int = Field(default=500, alias="AUTOMATCH_MAX_RESULTS")

    # Remote AutoMatch service
    api_base: str = Field(default="", alias="AUTOMATCH_API_BASE")
    api_token: str = Field(default="", alias="AUTOMATCH_API_TOKEN")
    api_timeout: float = Field(default=30.0, alias="AUTOMATCH_API_TIMEOUT")

    def ensure_dirs(self):
        """Create data, output, and log directories."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.out_dir.mkdir(parents=True, exist_ok=True)
        self.log_dir.mkdir(parents=True, exist_ok=True)

    @property
    def duckdb_path(self) -> str:
        """Return DuckDB path as string."""
        return str(self.db_path)


# Global settings instance
settings = Settings()
