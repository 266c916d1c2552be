"""Test doubles and helpers for the replay recorder test suite."""
