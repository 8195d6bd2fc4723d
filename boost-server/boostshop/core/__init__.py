"""Core configuration, security and shared helpers."""
