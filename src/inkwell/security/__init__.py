"""
Credential handling for connection strings and logged parameters.
"""

from .dsns import DSNConfig, parse_dsn
from .redaction import REDACTED_VALUE, looks_sensitive, redact_mapping, redact_params, redact_value

__all__ = [
    "DSNConfig",
    "REDACTED_VALUE",
    "looks_sensitive",
    "parse_dsn",
    "redact_mapping",
    "redact_params",
    "redact_value",
]
