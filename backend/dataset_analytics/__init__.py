"""Dataset analytics: category statistics, outliers, trends and activity reports."""

__version__ = "0.1.0"
