"""
Raw incident ingestion.
"""

from .crime_loader import load_crime_csv, generate_sample_data
from .ingestion_master import run_ingestion

__all__ = ["load_crime_csv", "generate_sample_data", "run_ingestion"]
