"""Message admission module."""

from .pipeline import IMessagePipeline, MessagePipeline
from .sweeper import RetentionSweeper

__all__ = ["IMessagePipeline", "MessagePipeline", "RetentionSweeper"]
