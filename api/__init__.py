"""
api/__init__.py

HTTP routers of the WhatsApp agent service:
- webhook: Inbound messages from the messaging gateway
- send: Direct outbound send
- cron: Maintenance hook (fallback replay)
- health: Liveness and active storage mode
"""
