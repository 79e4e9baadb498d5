"""
LLM module - Gemini access.

- client.py        : GeminiClient with tiered fallback
- model_manager.py : model tiers and rate-limit bookkeeping
- parsing.py       : JSON extraction from model output
- prompts/         : prompt templates
"""
from applyos.llm.client import GeminiClient, get_llm_client, reset_llm_client
from applyos.llm.model_manager import ModelManager, TaskComplexity, get_model_manager

__all__ = [
    "GeminiClient",
    "get_llm_client",
    "reset_llm_client",
    "ModelManager",
    "TaskComplexity",
    "get_model_manager",
]
