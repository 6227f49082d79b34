"""
Learning Package

Learned utterance -> stop aliases.
"""

from services.voice_load.learning.alias_store import AliasStore

__all__ = ['AliasStore']
