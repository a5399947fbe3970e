"""Product R&D advisory service: multi-provider AI analysis orchestration."""

__version__ = "1.0.0"
