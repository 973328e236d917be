"""
Workflow Interfaces Layer
=========================

API controllers for the ticket workflow module.
"""

from inquiry_board.workflow.interfaces.controllers import router

__all__ = ["router"]
