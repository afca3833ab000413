# Shared Tools
"""
I/O collaborators: SSM Parameter Store, the Notion record store and
batch notifications.
"""

from butler.shared.tools.ssm import ParameterStore
from butler.shared.tools.notion import (
    NotionRecordStore,
    RecordPage,
    RecordStore,
    classify_error,
    get_notion_client,
)
from butler.shared.tools.notifications import (
    LambdaNotifier,
    Notifier,
    SummaryLine,
    build_summary_message,
)

__all__ = [
    # Parameter Store
    "ParameterStore",
    # Record store
    "NotionRecordStore",
    "RecordPage",
    "RecordStore",
    "classify_error",
    "get_notion_client",
    # Notifications
    "LambdaNotifier",
    "Notifier",
    "SummaryLine",
    "build_summary_message",
]
