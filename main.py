"""
Entry point for the Payer Coverage Insights API.
Run with: uvicorn main:app --reload
"""
from payer_insights.main import app

__all__ = ["app"]
