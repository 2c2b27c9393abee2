"""Data models for call verification."""
