"""
Data models for payloads and data sources.
"""

from .payload import DataSource, DataSourceType, Interval, Payload, ProtocolVersion, now

__all__ = [
    "DataSource",
    "DataSourceType",
    "Interval",
    "Payload",
    "ProtocolVersion",
    "now",
]
