"""Agent configuration for the MathTutor workflows.

Model, reasoning effort and workflow mode are read from the environment
at the point of use:

    AGENT_MODEL                 model name (default gpt-5.1)
    AGENT_REASONING_EFFORT      minimal | low | medium | high (default high)
    MATHTUTOR_WORKFLOW_MODE     single | multi (default single)
    MATHTUTOR_REQUIRE_APPROVAL  gate the multi-agent workflow on a human
                                decision (default true)
"""

from __future__ import annotations

import logging
import os
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-5.1"
DEFAULT_REASONING_EFFORT = "high"
WORKFLOW_NAME = "MathTutor"

SINGLE_MODE = "single"
MULTI_MODE = "multi"
_VALID_MODES = frozenset({SINGLE_MODE, MULTI_MODE})
_VALID_EFFORTS = frozenset({"minimal", "low", "medium", "high"})

TUTOR_INSTRUCTIONS = """You are a patient math tutor.

Work every numeric result out by running Python in the code interpreter;
never estimate by hand. Explain the reasoning step by step in Markdown and
write formulas in LaTeX ($...$ inline, $$...$$ for display).

When a diagram helps (probability trees, function plots, geometry
sketches), draw it with graphviz or matplotlib, save it as a PNG under
/mnt/data/, and link it in your message as [name.png](sandbox:/mnt/data/name.png).
Put the same sandbox path in figure_path, or leave figure_path empty when
you made no figure."""

FILES_INSTRUCTIONS = (
    "\n\nIf the user has uploaded files, you can access them directly using "
    "the code interpreter. The files are automatically available in your "
    "environment."
)

SOLVER_INSTRUCTIONS = TUTOR_INSTRUCTIONS + (
    "\n\nSolve the student's problem. A reviewer will check your solution "
    "before a final explanation is written."
)

REVIEWER_INSTRUCTIONS = """You review a math tutor's solution.

Re-check every computation with the code interpreter. Report mistakes
precisely in message and set is_correct accordingly. Your notes are
internal and are never shown to the student."""

EXPLAINER_INSTRUCTIONS = TUTOR_INSTRUCTIONS + (
    "\n\nUsing the solution and the reviewer's notes above, write the final "
    "explanation for the student, correcting anything the reviewer flagged."
)


def get_agent_model() -> str:
    return os.environ.get("AGENT_MODEL", "").strip() or DEFAULT_MODEL


def get_reasoning_effort() -> str:
    effort = os.environ.get("AGENT_REASONING_EFFORT", "").strip().lower()
    if not effort:
        return DEFAULT_REASONING_EFFORT
    if effort not in _VALID_EFFORTS:
        logger.warning(
            "Ignoring AGENT_REASONING_EFFORT=%r; using %s",
            effort,
            DEFAULT_REASONING_EFFORT,
        )
        return DEFAULT_REASONING_EFFORT
    return effort


def get_workflow_mode() -> str:
    """Return 'single' or 'multi' from MATHTUTOR_WORKFLOW_MODE."""
    mode = os.environ.get("MATHTUTOR_WORKFLOW_MODE", "").strip().lower()
    if not mode:
        return SINGLE_MODE
    if mode not in _VALID_MODES:
        logger.warning("Unknown MATHTUTOR_WORKFLOW_MODE=%r; using single", mode)
        return SINGLE_MODE
    return mode


def approval_required() -> bool:
    value = os.environ.get("MATHTUTOR_REQUIRE_APPROVAL", "true").strip().lower()
    return value not in {"0", "false", "no", "off"}


def extract_tutor_message(output: Any) -> str:
    """Display message of a tutor agent's final output."""
    if isinstance(output, dict):
        message = output.get("message")
    else:
        message = getattr(output, "message", None)
    return message if isinstance(message, str) else ""
