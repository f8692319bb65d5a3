"""
Knowledge-base Notes.

- core/: Configuration, logging, exceptions, concurrency
- parsing/: Front matter decoding and canonical rendering
- repositories/: Note files on disk
- services/: Loading, validation and note lifecycle
- schemas/: Pydantic note records and reports
- cli/: Command-line client (Typer + Rich)
"""
