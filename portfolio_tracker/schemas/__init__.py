# portfolio_tracker/schemas/__init__.py
"""
Pydantic request/response schemas for the HTTP layer.
"""
