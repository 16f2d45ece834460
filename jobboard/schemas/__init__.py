"""
ART Job Board - Pydantic Schemas Package

Request and response schemas for the API.
"""
