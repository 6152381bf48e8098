"""ctx_snap: snapshot a directory tree into one LLM-friendly Markdown or JSON file."""

__version__ = "0.1.0"
