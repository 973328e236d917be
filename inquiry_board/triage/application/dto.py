"""
Triage Application DTOs
=======================

Data Transfer Objects for the triage API layer.
"""

from typing import List

from pydantic import BaseModel, Field, field_validator


# ========== Request DTOs ==========

class AskRequest(BaseModel):
    """Request model for the ask-AI feature."""
    ticket_id: int = Field(..., ge=1, description="Ticket the answer is posted under")
    question: str = Field(..., min_length=1, description="Question to answer")

    @field_validator("question")
    @classmethod
    def validate_question_length(cls, v: str) -> str:
        """Ensure the question is not too long."""
        if len(v) > 5000:
            raise ValueError("Question too long (max 5000 characters)")
        return v


# ========== Response DTOs ==========

class AskResponse(BaseModel):
    """Response model for the ask-AI feature."""
    ticket_id: int
    answer: str
    comment_id: int


class TickResponse(BaseModel):
    """Response model summarizing one worker tick."""
    ran: bool
    published: List[int] = []
    skipped: List[int] = []
    reverted: List[int] = []
    failed: List[int] = []
