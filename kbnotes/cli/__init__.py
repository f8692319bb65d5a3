"""
CLI Module.

Command-line client built with Typer and Rich.

Architecture:
- CLI is a thin presentation layer
- All note logic lives in kbnotes.services and kbnotes.parsing
- Commands build services through kbnotes.core.dependencies

Usage:
    kbnotes --help
    kbnotes notes check
    kbnotes notes show git-ignore.md
"""
