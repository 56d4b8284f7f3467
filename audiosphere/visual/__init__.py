"""Consumers of the loudness levels."""
