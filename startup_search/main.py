"""
Application entry point.

This module serves as the main entry point for running the
startup search API server using uvicorn.
"""

from uvicorn import run

if __name__ == "__main__":
    run("startup_search.api.app:app", host="localhost", port=8000, reload=True)
