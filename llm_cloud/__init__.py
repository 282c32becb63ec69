"""
llm_cloud/__init__.py

LLM access for the agent:
- provider: Provider selection and AsyncOpenAI client construction
- conversation: Chat message mapping and the shared completion call
- generator: Reply, introduction and email draft generation
"""
