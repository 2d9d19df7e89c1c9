"""RecoCache: per-user recommendation caching and retraining service.

This package decides, for each recommendation request, whether to serve a
cached recommendation list, retrain synchronously, or fall back to a
cold-start list, and reconciles cached product ids against the live catalog.

Modules:
    api: FastAPI application and REST API endpoints
    recommender: staleness policy, fallback, orchestration and training
    storage: catalog and analytics collaborators
"""

__version__ = "0.1.0"
