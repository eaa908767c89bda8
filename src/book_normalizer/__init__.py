"""Normalize TXT/EPUB/PDF books into a structured document model."""

__version__ = "0.1.0"
