"""Boardroom council: multi-agent executive discussions driven to consensus."""

__version__ = "0.1.0"
