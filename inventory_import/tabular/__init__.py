from .reader import CSVParseError, normalize_header, parse_csv, read_header

__all__ = ["CSVParseError", "normalize_header", "parse_csv", "read_header"]
