"""Core value types, configuration, errors and interfaces.

This package provides:
- Value types and records (BlockRange, EventLog, ErrorClass, Address, Topic0)
- Configuration (ChainAccessConfig)
- Error taxonomy (LogsieveError, ConfigurationError, RpcError)
"""

from logsieve.core.config import ChainAccessConfig
from logsieve.core.exceptions import ConfigurationError, LogsieveError, RpcError
from logsieve.core.models import Address, BlockHeight, BlockRange, ErrorClass, EventLog, Timestamp, Topic0

__all__ = [
    "ChainAccessConfig",
    "ConfigurationError",
    "LogsieveError",
    "RpcError",
    "Address",
    "BlockHeight",
    "BlockRange",
    "ErrorClass",
    "EventLog",
    "Timestamp",
    "Topic0",
]
