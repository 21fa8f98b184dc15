"""Handlers producing forecast and analytics data."""
