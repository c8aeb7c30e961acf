"""Auto-categorize YNAB transactions from your own categorization history."""

__version__ = "1.0.0"
