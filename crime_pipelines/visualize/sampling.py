# Swappable row sampling for map layers

from typing import Optional

import pandas as pd

from config import RANDOM_SEED


class SamplingStrategy:
    """Reduce a table to at most ``n`` rows for rendering."""

    def sample(self, df: pd.DataFrame, n: Optional[int]) -> pd.DataFrame:
        raise NotImplementedError


class RandomSampler(SamplingStrategy):
    """Seeded uniform sample without replacement; same seed and input give the same rows."""

    def __init__(self, seed: int = RANDOM_SEED):
        self.seed = seed

    def sample(self, df: pd.DataFrame, n: Optional[int]) -> pd.DataFrame:
        if n is None or len(df) <= n:
            return df
        return df.sample(n=n, random_state=self.seed)

    def __repr__(self) -> str:
        return f"RandomSampler(seed={self.seed})"


class NoSampler(SamplingStrategy):
    def sample(self, df: pd.DataFrame, n: Optional[int]) -> pd.DataFrame:
        return df

    def __repr__(self) -> str:
        return "NoSampler()"


__all__ = ["SamplingStrategy", "RandomSampler", "NoSampler"]
