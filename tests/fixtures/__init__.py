"""Test fixtures package for ssoinventory.

- directory: in-memory async directory fake, error builders and sample data

Usage:
    from tests.fixtures.directory import FakeDirectory, throttled, small_directory
"""

from .directory import (
    IDENTITY_STORE_ID,
    INSTANCE_ARN,
    FakeDirectory,
    access_denied,
    client_error,
    fast_settings,
    no_sleep,
    not_found,
    ps_arn,
    small_directory,
    throttled,
)

__all__ = [
    "IDENTITY_STORE_ID",
    "INSTANCE_ARN",
    "FakeDirectory",
    "access_denied",
    "client_error",
    "fast_settings",
    "no_sleep",
    "not_found",
    "ps_arn",
    "small_directory",
    "throttled",
]
