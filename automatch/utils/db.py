"""DuckDB helpers for raw export tables."""
import logging
from typing import Optional

import duckdb
import pandas as pd

from automatch.config import settings
from automatch.utils.coerce import to_text

logger = logging.getLogger(__name__)


def write_text_table(df: pd.DataFrame, table: str, db_path: Optional[str] = None):
    """
    Replace a DuckDB table with the DataFrame, storing every column as VARCHAR.

    Raw exports mix types within a column; values are parsed again by the
    loaders, so the table keeps them as text.

    Args:
        df: DataFrame to persist
        table: Target table name
        db_path: DuckDB path (defaults to settings)
    """
    text_df = pd.DataFrame({c: df[c].map(to_text).astype(object) for c in df.columns})
    select = ", ".join(f'CAST("{c}" AS VARCHAR) AS "{c}"' for c in text_df.columns)

    conn = duckdb.connect(db_path or settings.duckdb_path)
    try:
        conn.register("export_df", text_df)
        conn.execute(f"CREATE OR REPLACE TABLE {table} AS SELECT {select} FROM export_df")
        conn.unregister("export_df")
    finally:
        conn.close()

    logger.info(f"Wrote {len(text_df)} rows to DuckDB table {table}")


def read_table(table: str, db_path: Optional[str] = None, where: str = "", params: Optional[list] = None) -> pd.DataFrame:
    """
    Read a DuckDB table into a DataFrame.

    Args:
        table: Table name
        db_path: DuckDB path (defaults to settings)
        where: Optional SQL WHERE clause body
        params: Parameters for the WHERE clause

    Returns:
        DataFrame (empty if the table doesn't exist)
    """
    conn = duckdb.connect(db_path or settings.duckdb_path)
    try:
        query = f"SELECT * FROM {table}"
        if where:
            query += f" WHERE {where}"
        return conn.execute(query, params or []).df()
    except duckdb.CatalogException:
        logger.warning(f"Table {table} not found in {db_path or settings.duckdb_path}")
        return pd.DataFrame()
    finally:
        conn.close()
