"""Structured output schemas for the tutor agents."""

from pydantic import BaseModel, ConfigDict, Field


class TutorOutput(BaseModel):
    """Final answer of a visible tutor agent.

    Attributes:
        message: Markdown (with LaTeX) shown to the student.
        figure_path: Sandbox path of a generated figure, or an empty string.
    """

    model_config = ConfigDict(extra="ignore")

    message: str = Field(description="Markdown answer shown to the student")
    figure_path: str = Field(
        description="Sandbox path of a generated figure, or an empty string",
    )


class ReviewOutput(BaseModel):
    """Silent reviewer verdict folded into the conversation history."""

    model_config = ConfigDict(extra="ignore")

    message: str = Field(description="Review notes for the explaining agent")
    is_correct: bool = Field(description="Whether the solution is correct")
