"""Input-side helpers: loading transactions from CSV and repairing them in place."""

from .csv_loader import REQUIRED_COLUMNS, load_all, repair_description

__all__ = ["REQUIRED_COLUMNS", "load_all", "repair_description"]
