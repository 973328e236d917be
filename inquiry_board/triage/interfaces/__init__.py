"""
Triage Interfaces Layer
=======================

API controllers for the triage module.
"""

from inquiry_board.triage.interfaces.controllers import router

__all__ = ["router"]
