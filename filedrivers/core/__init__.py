"""Core building blocks: storage drivers and configuration utilities."""
