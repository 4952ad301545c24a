"""
Crime analytics pipelines: cleaning, temporal aggregation, grid hotspots,
forecast reconciliation and presentation adapters.
"""

__version__ = "0.1.0"
