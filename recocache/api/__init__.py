"""FastAPI application module for RecoCache.

This module contains the FastAPI application, route handlers, and the
request-level plumbing (auth, logging, metrics) for the recommendation
service.
"""
