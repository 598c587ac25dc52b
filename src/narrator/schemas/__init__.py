"""Pydantic schemas for the narration API."""
