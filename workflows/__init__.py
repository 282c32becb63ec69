"""
workflows/__init__.py

Workflow executors, one per intent:
- identity: Agent introduction plus identity card link
- email: Draft and send an email, then confirm in the thread
- task_confirmation: Resume an action waiting for the user's approval
- default_reply: Contextual reply, with an apology when anything fails

Each workflow follows the BaseWorkflow interface.
"""
