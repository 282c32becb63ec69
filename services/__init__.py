"""
services/__init__.py

Conversation state:
- durable_store: Supabase-backed threads and users tables
- memory_store: In-memory fallback cache of thread windows
- thread_store: Durable-first thread storage with fallback and replay
- user_registry: Sender upsert by phone number
- pending_actions: Actions waiting for the user's approval
"""
