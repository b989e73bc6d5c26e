"""
Test helper utilities for screentrail testing.

This module provides reusable utilities for:
- Building recognition results, contexts, frames and summaries
- Scripted recognition engines
- Recording, failing and slow plugins
"""
