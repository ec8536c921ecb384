"""
Pydantic data models package.

Contains the validation models for encrypted paste and comment envelopes.
"""

from .envelope import CommentEnvelope, PasteEnvelope, is_comment_submission, validate_envelope

__all__ = [
    "CommentEnvelope",
    "PasteEnvelope",
    "is_comment_submission",
    "validate_envelope",
]
