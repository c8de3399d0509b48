"""Wire encodings for log records."""

from scopedlog.core.encoding.ndjson import decode_record, encode_record, encode_records

__all__ = [
    "decode_record",
    "encode_record",
    "encode_records",
]
