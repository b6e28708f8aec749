"""Domain models for the HubSpot bulk property uploader."""

from .error_record import ErrorRecord
from .property_record import (
    FieldType,
    Option,
    OptionsDecodeError,
    PropertyRecord,
    PropertyType,
    decode_options,
    encode_options,
)
from .table import HeaderIndex, NormalizedTable, RawTable
from .upload_result import RunResult

__all__ = [
    # Table models
    "HeaderIndex",
    "NormalizedTable",
    "RawTable",
    # Property models
    "FieldType",
    "Option",
    "OptionsDecodeError",
    "PropertyRecord",
    "PropertyType",
    "decode_options",
    "encode_options",
    # Logging / results
    "ErrorRecord",
    "RunResult",
]
