"""
paperlingo: vocabulary retention engine.

Schedules saved words with a learning-ladder spaced repetition algorithm,
builds a capped daily study queue, and keeps a local card store consistent
with a remote copy keyed by sync identity.
"""

__version__ = "0.3.0"
