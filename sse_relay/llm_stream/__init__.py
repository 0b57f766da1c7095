"""
LLM Stream Module

The streaming relay engine: upstream access, SSE frame parsing, content
extraction and the orchestrator that ties them together.
"""
