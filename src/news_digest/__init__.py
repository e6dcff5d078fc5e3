"""Collect AI tool news and compile it into digests."""

__version__ = "0.1.0"
