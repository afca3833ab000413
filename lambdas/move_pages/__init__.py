"""
MovePages Lambda

Scheduled Lambda that moves overdue pages from watched statuses to a
target status (e.g. Doing/Blocked -> Done once their date has passed).

Components:
- handler: Lambda entry point
- query_builder: configuration models, move filter and status transition
"""

from lambdas.move_pages.handler import lambda_handler, run_move_pages
from lambdas.move_pages.query_builder import (
    MoveFilterParams,
    MovePagesConfig,
    apply_overrides,
    build_move_filter,
    make_status_transition,
)

__all__ = [
    "lambda_handler",
    "run_move_pages",
    "MoveFilterParams",
    "MovePagesConfig",
    "apply_overrides",
    "build_move_filter",
    "make_status_transition",
]
