"""
AlloCine Watchlist Loader

Loads an IMDb watchlist export and reduces it to the columns needed to look
titles up on AlloCine: the IMDb id, both titles, the year and the title type.
"""
import logging
from pathlib import Path

import pandas as pd

from allocine.core.config import settings

logger = logging.getLogger(__name__)

# IMDb export header -> internal column name
COLUMN_MAP = {
    'Const': 'const',
    'Title': 'title',
    'Original Title': 'original_title',
    'Title Type': 'title_type',
    'Year': 'year',
}


class DataLoader:
    """
    Handles loading the titles to look up on AlloCine.
    """
    def __init__(self, filepath: Path = settings.WATCHLIST_FILE):
        """
        Initializes the DataLoader.

        Args:
            filepath (Path): The path to the watchlist CSV file.

        Raises:
            FileNotFoundError: If the watchlist file does not exist.
        """
        self.filepath = Path(filepath)
        if not self.filepath.exists():
            logger.error(f"Watchlist file not found at: {self.filepath}")
            raise FileNotFoundError(f"Watchlist file not found at: {self.filepath}")

    def load_watchlist(self) -> pd.DataFrame:
        """
        Loads the watchlist CSV and keeps the lookup columns.

        Returns:
            pd.DataFrame: One row per title, with a 'search_title' column
            holding the title to send to AlloCine.
        """
        logger.info(f"Loading watchlist from: {self.filepath}")

        df = pd.read_csv(self.filepath)
        missing = [col for col in ('Const', 'Title') if col not in df.columns]
        if missing:
            raise ValueError(f"Watchlist is missing required columns: {missing}")

        df = df[[col for col in COLUMN_MAP if col in df.columns]].rename(columns=COLUMN_MAP)
        df['const'] = df['const'].astype(str)
        if 'year' in df.columns:
            df['year'] = pd.to_numeric(df['year'], errors='coerce').astype('Int64')

        # Original titles match AlloCine's records more often than localized ones
        if 'original_title' in df.columns:
            df['search_title'] = df['original_title'].fillna(df['title'])
        else:
            df['search_title'] = df['title']

        logger.info(f"Watchlist loaded. Found {len(df)} titles.")
        return df
