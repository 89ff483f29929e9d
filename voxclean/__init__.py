"""
voxclean - LLM cleanup for dictated speech transcripts.

Turns raw speech-recognizer output into clean written text through one of
several LLM providers, and ships a scenario-based harness for measuring how
well a provider does it.
"""

__version__ = "0.1.0"
__description__ = "LLM cleanup for dictated speech transcripts"
