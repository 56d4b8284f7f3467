"""Loudness analysis core."""
