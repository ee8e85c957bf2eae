"""Scholarship management REST backend.

The package exposes a FastAPI application (`scholarship_api.main.app`)
backed by MongoDB. Repositories wrap collections, services hold the few
multi-step operations and `providers` wraps Stripe and Firebase.
"""
