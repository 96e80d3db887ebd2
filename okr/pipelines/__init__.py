"""
Pipeline functions for OKR operations.

Pipelines are stateless orchestration functions that coordinate
services and the progress engine.
"""
