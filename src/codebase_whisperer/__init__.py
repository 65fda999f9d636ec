"""Codebase Whisperer - heuristic repository scanner with an LLM Q&A layer."""

__version__ = "0.3.0"
