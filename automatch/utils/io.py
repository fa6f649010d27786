"""File I/O utilities for table exports (CSV, XLSX, JSON)."""
import pandas as pd
from pathlib import Path
from typing import Union
import logging

logger = logging.getLogger(__name__)


def read_data_file(file_path: Union[str, Path]) -> pd.DataFrame:
    """
    Read a CSV, XLSX or JSON table export into a DataFrame.

    JSON exports are expected as a list of row objects, the shape the
    hosted Postgres REST API returns.

    Args:
        file_path: Path to export file

    Returns:
        DataFrame with file contents

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If file format is not supported
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    suffix = file_path.suffix.lower()

    try:
        if suffix == ".csv":
            df = pd.read_csv(file_path, low_memory=False)
        elif suffix == ".xlsx":
            df = pd.read_excel(file_path, engine="openpyxl")
        elif suffix == ".json":
            df = pd.read_json(file_path, orient="records", dtype=False)
        else:
            raise ValueError(f"Unsupported file format: {suffix}")

        logger.info(f"Loaded {len(df)} rows from {file_path}")
        return df

    except Exception as e:
        logger.error(f"Error reading {file_path}: {e}")
        raise


def write_csv(df: pd.DataFrame, output_path: Union[str, Path], max_rows: int = None):
    """
    Write a DataFrame to CSV, creating parent directories.

    Args:
        df: DataFrame to write
        output_path: Output file path
        max_rows: Optional cap on rows written
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    out_df = df.head(max_rows) if max_rows else df
    out_df.to_csv(output_path, index=False, encoding="utf-8")
    logger.info(f"Wrote {len(out_df)} rows to {output_path}")
