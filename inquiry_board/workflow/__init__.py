"""
Workflow Module
===============

Bounded Context for the ticket lifecycle.

Responsibilities:
- Own the fixed step set and transition table
- Apply guarded (compare-and-set) transitions with an audit log entry
- Expose the human-driven transition surface (approve, re-analyze, rework)
"""
