"""Specialist agents. Each one is a set of stateless functions over an LLMProvider."""
