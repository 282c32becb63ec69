"""
shared/__init__.py

Shared utilities and models used across multiple modules.

This package contains common functionality that is used by multiple
components of the agent:
- models: Message, Thread, User, Intent and the other typed records
- exceptions: The service exception hierarchy
- utils: Utility functions and helpers
"""
