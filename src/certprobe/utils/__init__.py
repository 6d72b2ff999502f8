"""Utilities shared by the TLS pipeline: deadline handling, name resolution,
bounded HTTP and rendering of untrusted text."""

from .deadline import Deadline
from .dns import resolve_addresses
from .http import fetch_bytes
from .text import printable


__all__ = ["Deadline", "fetch_bytes", "printable", "resolve_addresses"]
