"""Audio file decoding."""
