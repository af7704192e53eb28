"""Service-request lifecycle engine for matching homeowners with professionals."""

__version__ = "0.1.0"
