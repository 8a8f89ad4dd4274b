"""sitegen-stream: streaming website generation pipeline."""

__version__ = "0.1.0"
