"""
AlloCine Watchlist Enrichment

Looks up each title of a watchlist on AlloCine, fetches the movie details for
the best search hit and writes the enriched rows to a CSV. The process is
resumable: rows already present in the output file are skipped.
"""
import logging
import time
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
from tqdm import tqdm

from allocine.api.client import AlloCineClient
from allocine.api.models import Movie, ResponseProfile
from allocine.core.config import settings
from allocine.core.data_loader import DataLoader

logger = logging.getLogger(__name__)


def pick_match(candidates: List[Movie], year: Optional[int]) -> Optional[Movie]:
    """Prefers the first candidate released in `year`, else the first one."""
    if not candidates:
        return None
    if year:
        for movie in candidates:
            if movie.production_year == year:
                return movie
    return candidates[0]


class AlloCineEnricher:
    """Orchestrates the AlloCine enrichment process."""

    def __init__(
        self,
        client: Optional[AlloCineClient] = None,
        loader: Optional[DataLoader] = None,
        output_file: Optional[Path] = None,
        rate_limit: int = settings.ALLOCINE_RATE_LIMIT,
    ):
        self.client = client or AlloCineClient()
        self.loader = loader
        self.output_file = output_file or settings.PROCESSED_DATA_DIR / "01_allocine_enriched_movies.csv"
        self.rate_limit = rate_limit

    def run(self, force: bool = False, limit: Optional[int] = None) -> int:
        """
        Executes the full enrichment workflow.

        Args:
            force (bool): If True, re-processes all titles.
            limit (int, optional): The maximum number of titles to process.

        Returns:
            int: The number of titles processed in this run.
        """
        source_df = (self.loader or DataLoader()).load_watchlist()
        dest_df = self._load_or_initialize_dest_df(force)

        to_process = self._get_titles_to_process(source_df, dest_df)
        if limit:
            to_process = to_process.head(limit)

        if to_process.empty:
            logger.info("All titles are already enriched with AlloCine data.")
            return 0

        logger.info(f"Found {len(to_process)} titles to enrich with AlloCine data.")

        enriched_data = []
        with tqdm(total=len(to_process), desc="Enriching with AlloCine") as pbar:
            for _, row in to_process.iterrows():
                try:
                    enriched_data.append(self._process_title(row))
                    self._save_checkpoint(dest_df, enriched_data)
                except Exception as e:
                    logger.error(f"An unexpected error occurred for IMDb ID {row['const']}: {e}")
                finally:
                    pbar.update(1)
                    if self.rate_limit:
                        time.sleep(1 / self.rate_limit)

        self._save_checkpoint(dest_df, enriched_data)
        logger.info(f"Processed {len(enriched_data)} titles. Saved to: {self.output_file}")
        return len(enriched_data)

    def _load_or_initialize_dest_df(self, force: bool) -> pd.DataFrame:
        if self.output_file.exists() and not force:
            logger.info(f"Resuming from existing file: {self.output_file}")
            return pd.read_csv(self.output_file, dtype={'const': str})
        return pd.DataFrame()

    @staticmethod
    def _get_titles_to_process(source_df: pd.DataFrame, dest_df: pd.DataFrame) -> pd.DataFrame:
        if dest_df.empty:
            return source_df
        done = set(dest_df['const'].astype(str))
        return source_df[~source_df['const'].isin(done)]

    def _process_title(self, row: pd.Series) -> Dict:
        """Searches AlloCine for one title and returns the enriched row."""
        result = row.to_dict()
        year = row.get('year')
        year = int(year) if pd.notna(year) else None

        feed = self.client.search(row['search_title'], count=10)
        if not feed.ok:
            logger.warning(f"Search failed for '{row['search_title']}': {feed.error.message}")
            return result

        match = pick_match(feed.movies, year)
        if match is None:
            logger.warning(f"No AlloCine entry for IMDb ID {row['const']} ('{row['search_title']}')")
            return result

        movie = self.client.movie_get_info(match.code, profile=ResponseProfile.LARGE)
        if not movie.ok:
            logger.warning(f"Could not fetch details for AlloCine code {match.code}: {movie.error.message}")
            movie = match

        # Prefixed with 'allocine_' to avoid clashing with watchlist columns
        result['allocine_code'] = match.code
        result['allocine_title'] = movie.title
        result['allocine_original_title'] = movie.original_title
        result['allocine_production_year'] = movie.production_year
        result['allocine_runtime'] = movie.runtime
        result['allocine_genres'] = movie.genres
        result['allocine_directors'] = movie.directors
        result['allocine_actors'] = movie.actors
        result['allocine_press_rating'] = movie.press_rating
        result['allocine_user_rating'] = movie.user_rating
        result['allocine_synopsis'] = movie.synopsis
        return result

    def _save_checkpoint(self, dest_df: pd.DataFrame, new_data: List[Dict]):
        """Saves a checkpoint of the currently enriched data."""
        if new_data:
            self.output_file.parent.mkdir(parents=True, exist_ok=True)
            temp_df = pd.concat([dest_df, pd.DataFrame(new_data)], ignore_index=True)
            temp_df.to_csv(self.output_file, index=False)
