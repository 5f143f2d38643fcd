"""Worklog dashboard backend."""
