"""Prompt aggregator: sync prompt collections from external sources into a local corpus."""

__version__ = "0.1.0"
