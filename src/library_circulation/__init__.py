"""
Library Circulation package.

This package implements the circulation rule engine of a library
administration suite and exposes it through a small MCP tool server.

Key Components:
- models: Pydantic models for members, loans, results and receipts
- database: SQLAlchemy schema, session management and repositories
- rules: holiday calendar, loan rule resolution, fines and reservation priority
- circulation: loan staging and the circulation engine
- tools: MCP tools (checkout, return, extend)
- config: Configuration management with Pydantic v2
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
