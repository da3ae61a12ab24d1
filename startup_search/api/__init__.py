"""
API module for HTTP interface.

This module contains the FastAPI application and route definitions
for the startup search service.

Endpoints:
- Health check
- Natural language search
- Value catalog snapshot
"""
