"""Shared video utilities for reference decoding and live capture."""
