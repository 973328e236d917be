"""
Triage Module
=============

Bounded Context for automated ticket triage.

Responsibilities:
- Gather live diagnostics from the ticket owner's server
- Ask the reasoning service for an approval-ready analysis report
- Drive registered tickets to pending approval, reverting on failure
"""
