"""Utility modules."""
from api.utils.json_utils import compact_json_dump, json_dump, write_json_file
from api.utils.time_utils import format_timestamp, parse_iso_timestamp
from api.utils.validation import validate_id

__all__ = [
    "compact_json_dump",
    "json_dump",
    "write_json_file",
    "format_timestamp",
    "parse_iso_timestamp",
    "validate_id",
]
