"""
Payment Summary Notifications

Formats one summary message per batch and delivers it by invoking the
notification Lambda asynchronously (InvocationType=Event).

Delivery failures raise NotificationError. By the time the notifier runs
the record updates are already committed, so a delivery failure fails the
run without rolling anything back.
"""

import json
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

import boto3
from botocore.exceptions import ClientError
import structlog

from butler.shared.config import Settings, get_settings
from butler.shared.exceptions import NotificationError
from butler.shared.models.outcomes import TransitionOutcome

log = structlog.get_logger()


@dataclass(frozen=True)
class SummaryLine:
    """One record in the summary."""

    label: str
    amount: float = 0.0


class Notifier(Protocol):
    """Notification aggregator consumed by the transition engine."""

    def notify(self, outcomes: Sequence[TransitionOutcome]) -> None:
        """Deliver one summary for the successfully transitioned records."""
        ...


def _format_amount(amount: float) -> str:
    return f"{amount:.0f}" if float(amount).is_integer() else f"{amount:.2f}"


def build_summary_message(
    lines: Sequence[SummaryLine],
    *,
    currency: str,
    header: str = "🔔 Subscription Payments Due Today:",
) -> str:
    """
    Build the payment summary text.

    Args:
        lines: One entry per transitioned record
        currency: Currency code appended to every amount
        header: Bold header line

    Returns:
        Telegram-markdown message
    """
    total = sum(line.amount for line in lines)
    bullets = "\n".join(
        f"• {line.label}: *{_format_amount(line.amount)} {currency}*" for line in lines
    )
    return f"*{header}*\n\n{bullets}\n\n*Total: {_format_amount(total)} {currency}*"


class LambdaNotifier:
    """
    Delivers batch summaries through a notification Lambda.

    Args:
        label_property: Title property naming each record
        amount_property: Number property summed into the total
        client: boto3 Lambda client (default: built from settings)
        settings: Settings (default: cached settings)
    """

    def __init__(
        self,
        *,
        label_property: str,
        amount_property: str,
        client: Any = None,
        settings: Settings | None = None,
        unnamed_label: str = "Unnamed Subscription",
    ) -> None:
        self.settings = settings or get_settings()
        self.label_property = label_property
        self.amount_property = amount_property
        self.unnamed_label = unnamed_label
        self._client = client or boto3.client("lambda", **self.settings.lambda_config)

    def summary_lines(self, outcomes: Sequence[TransitionOutcome]) -> list[SummaryLine]:
        """Read label and amount of each record as it was matched."""
        return [
            SummaryLine(
                label=outcome.record.get_text(self.label_property) or self.unnamed_label,
                amount=outcome.record.get_number(self.amount_property) or 0.0,
            )
            for outcome in outcomes
        ]

    def notify(self, outcomes: Sequence[TransitionOutcome]) -> None:
        """
        Send one summary message for the given outcomes.

        Raises:
            NotificationError: If the invocation fails
        """
        if not outcomes:
            return

        lines = self.summary_lines(outcomes)
        message = build_summary_message(lines, currency=self.settings.currency)
        function_name = self.settings.notification_function_name

        try:
            response = self._client.invoke(
                FunctionName=function_name,
                InvocationType="Event",
                Payload=json.dumps({"text": message}).encode("utf-8"),
            )
        except ClientError as e:
            log.error(
                "notification_failed",
                function_name=function_name,
                error_code=e.response.get("Error", {}).get("Code"),
                error=str(e),
            )
            raise NotificationError(str(e)) from e

        if response.get("FunctionError"):
            log.error(
                "notification_function_error",
                function_name=function_name,
                function_error=response["FunctionError"],
            )
            raise NotificationError(f"{function_name} returned {response['FunctionError']}")

        log.info(
            "notification_sent",
            function_name=function_name,
            records=len(lines),
            total=sum(line.amount for line in lines),
        )
