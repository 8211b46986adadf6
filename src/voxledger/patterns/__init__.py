"""Behavioral pattern detection and best-effort learning."""
