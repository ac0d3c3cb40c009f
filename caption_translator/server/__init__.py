"""HTTP surface for the translation orchestrator (FastAPI)."""
