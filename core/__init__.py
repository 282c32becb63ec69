"""
core/__init__.py

Core ingestion and routing modules.

This package contains the central coordination logic for the agent:
- normalizer: Phone number canonicalization and inbound payload patching
- locks: Per-thread serialization of storage read-modify-write cycles
- classifier: Intent triage for workflow routing
- orchestrator: Intent to workflow dispatch
- ingestion: The `handle_incoming` entry point
- bootstrap: Composition root that wires the service objects together
"""
