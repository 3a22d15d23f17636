"""
MCP tools for the Library Circulation server.

Each tool is a dictionary with ``name``, ``description``, ``inputSchema``
and an async ``handler`` taking the raw arguments.
"""

from .circulation import checkout_items, extend_loan, return_loan

all_tools = [
    checkout_items,
    return_loan,
    extend_loan,
]

__all__ = [
    "all_tools",
    "checkout_items",
    "extend_loan",
    "return_loan",
]
