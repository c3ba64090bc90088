"""Document model: segments, positions and transactions."""

from querydoc.document.model import LEAF_TEXT, Document, ResolvedPos
from querydoc.document.segments import (
    SPACER_SIZE,
    TOKEN_NODE_SIZE,
    FilterToken,
    FreeTextToken,
    PlainText,
    Segment,
    Spacer,
    Token,
    ensure_token_id,
    generate_token_id,
    is_empty_token,
    is_spacer,
    is_text,
    is_token,
)
from querydoc.document.transaction import (
    ADD_TO_HISTORY,
    APPENDED_TRANSACTION,
    COMPOSITION,
    DRAGGING,
    FORCE_VALIDATION_CHECK,
    HISTORY,
    Mapping,
    Selection,
    StepMap,
    Transaction,
)

__all__ = [
    "ADD_TO_HISTORY",
    "APPENDED_TRANSACTION",
    "COMPOSITION",
    "DRAGGING",
    "Document",
    "FORCE_VALIDATION_CHECK",
    "FilterToken",
    "FreeTextToken",
    "HISTORY",
    "LEAF_TEXT",
    "Mapping",
    "PlainText",
    "ResolvedPos",
    "SPACER_SIZE",
    "Segment",
    "Selection",
    "Spacer",
    "StepMap",
    "TOKEN_NODE_SIZE",
    "Token",
    "Transaction",
    "ensure_token_id",
    "generate_token_id",
    "is_empty_token",
    "is_spacer",
    "is_text",
    "is_token",
]
