"""
TronGrid data access.

Provides the production BlockSource:
- TronGridClient: fetches the head and blocks by height over HTTP
- transform_tron_block: turns a raw payload into a classified BlockRecord
"""

from .client import DEFAULT_API_URL, TronGridClient
from .normalize import MalformedBlockError, result_value_from_hash, transform_tron_block

__all__ = [
    "DEFAULT_API_URL",
    "MalformedBlockError",
    "TronGridClient",
    "result_value_from_hash",
    "transform_tron_block",
]
