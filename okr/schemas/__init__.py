"""Pydantic schemas for the OKR progress API."""
