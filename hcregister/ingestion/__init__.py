"""Bulk record ingestion."""

from hcregister.ingestion.csv_import import parse_records_csv, read_records_csv

__all__ = ["parse_records_csv", "read_records_csv"]
