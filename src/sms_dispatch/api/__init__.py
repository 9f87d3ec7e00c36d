"""FastAPI surface for submitting envelopes to the dispatch engine."""
