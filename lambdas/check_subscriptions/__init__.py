"""
CheckSubscriptions Lambda

Periodic Lambda triggered by EventBridge Scheduled Rule to advance the
next payment date of subscriptions due today and send one payment summary.

Components:
- handler: Lambda entry point for scheduled trigger
- subscriptions: due filter and next-payment transition rules

Flow:
1. Triggered by scheduled EventBridge rule (e.g., daily in the morning)
2. Query subscriptions whose next payment date is today
3. Advance each next payment date by its cadence (monthly/yearly)
4. Send one summary with every advanced subscription and the total
5. Return summary of the run
"""

from lambdas.check_subscriptions.handler import lambda_handler, run_check_subscriptions
from lambdas.check_subscriptions.subscriptions import (
    SubscriptionProperties,
    build_due_filter,
    make_next_payment_transition,
    today_in,
)

__all__ = [
    "lambda_handler",
    "run_check_subscriptions",
    "SubscriptionProperties",
    "build_due_filter",
    "make_next_payment_transition",
    "today_in",
]
