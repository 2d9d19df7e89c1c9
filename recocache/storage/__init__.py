"""Collaborators that own catalog and analytics data."""
