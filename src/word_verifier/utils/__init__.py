"""Utility helpers for the word verifier."""
