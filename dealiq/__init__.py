"""DealIQ - deal analysis and buyer matching for real-estate acquisition leads."""

__version__ = "0.1.0"
