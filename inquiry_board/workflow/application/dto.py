"""
Workflow Application DTOs
=========================

Data Transfer Objects for the workflow API layer.

Pydantic models for request/response validation.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


# ========== Request DTOs ==========

class TransitionRequest(BaseModel):
    """Request model for an operator-driven step change."""
    ticket_id: int = Field(..., ge=1, description="Ticket id")
    target_step: str = Field(..., min_length=1, description="Step to move the ticket to")
    note: Optional[str] = Field(None, description="Log note; becomes feedback when sent back for analysis")
    actor_id: Optional[int] = Field(None, description="Operator user id")

    @field_validator("note")
    @classmethod
    def validate_note_length(cls, v: Optional[str]) -> Optional[str]:
        """Ensure the note stays a note."""
        if v is not None and len(v) > 5000:
            raise ValueError("Note too long (max 5000 characters)")
        return v


class ReanalysisRequest(BaseModel):
    """Request model for sending a ticket back for analysis with feedback."""
    feedback: str = Field(..., min_length=1, description="What the next analysis must reconsider")
    actor_id: Optional[int] = Field(None, description="Operator user id")


# ========== Response DTOs ==========

class TransitionResponse(BaseModel):
    """Response model for a guarded transition."""
    ticket_id: int
    from_step: str
    to_step: str
    applied: bool
    log_id: Optional[int] = None


class ProcessLogResponse(BaseModel):
    """One process log entry."""
    id: int
    step: str
    content: str
    created_by: Optional[int]
    created_at: datetime


class ProcessHistoryResponse(BaseModel):
    """Full process log of a ticket."""
    ticket_id: int
    entries: List[ProcessLogResponse]


class RequeueResponse(BaseModel):
    """Response model after clearing a ticket's failure counter."""
    ticket_id: int
    status: str
    analysis_failures: int
