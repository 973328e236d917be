"""
Shared Kernel Module
====================

Shared infrastructure used by both bounded contexts (workflow and triage).

DO NOT add workflow or triage business logic to the shared kernel.
"""
