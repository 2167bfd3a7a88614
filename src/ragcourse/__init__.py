"""ragcourse: LLM provider wrappers and a basic retrieval-augmented generation pipeline."""

__version__ = "0.1.0"
