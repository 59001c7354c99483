"""Recommendation engine services."""
