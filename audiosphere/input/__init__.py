"""Sample sources: microphone and file playback."""
