"""
Service layer for the AGCOD API and SigV4 request signing.

This module keeps request signing and HTTP calls out of the callers'
business logic.
"""
