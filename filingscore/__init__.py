"""Filing ingestion, quarterly financial aggregation and peer valuation scoring."""

__version__ = "1.0.0"
