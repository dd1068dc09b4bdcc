"""HTTP boundary for the visitor check-in service (FastAPI + Mangum)."""
