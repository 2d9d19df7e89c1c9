"""Recommendation core for RecoCache.

This module contains the staleness policy, the cold-start fallback, the
id-to-catalog mapping, the request orchestrator and the interaction trainer
used to refresh a user's cached recommendations.
"""
