"""
gateway/__init__.py

Outbound delivery through the A1Base messaging gateway:
- client: HTTP client for the individual, group and email send endpoints
- outbound: Addressing rules and paragraph splitting on top of the client
"""
