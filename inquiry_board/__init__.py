"""
Inquiry Board
=============

Support inquiry board with an automated triage pipeline.

Bounded contexts:
- workflow: ticket states, guarded transitions, human approval surface
- triage: server diagnostics, AI analysis, the scheduled triage worker
"""

__version__ = "1.0.0"
