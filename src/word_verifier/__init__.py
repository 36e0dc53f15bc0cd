"""Batch verification of singleton words against several AI language models."""

__version__ = "0.1.0"
