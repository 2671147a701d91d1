"""Core snippet engine: configuration, diagnostics, and the snippet package."""
