"""Relay module."""

from .connection import Connection, Transport
from .protocol import InboundFrame, parse_frame
from .relay import IRelay, Relay

__all__ = ["Connection", "IRelay", "InboundFrame", "Relay", "Transport", "parse_frame"]
