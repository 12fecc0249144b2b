"""Shared building blocks for GST returns and registration payloads."""
