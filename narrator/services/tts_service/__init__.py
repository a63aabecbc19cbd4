"""Text-to-speech drivers and provider timestamp decoding."""
