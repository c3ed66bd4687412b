"""AWS session and service client management."""

from .manager import AWSClientManager

__all__ = ["AWSClientManager"]
