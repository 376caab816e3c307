"""clickstats: banner click tracking with an in-memory cached repository."""

__version__ = "0.1.0"
