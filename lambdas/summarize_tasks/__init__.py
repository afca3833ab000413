"""
SummarizeTasks Lambda

Lists tasks from the tasks database, optionally narrowed by a creation
date range and a set of statuses.
"""

from lambdas.summarize_tasks.handler import (
    SummarizeTasksInput,
    TaskSummary,
    lambda_handler,
    summarize_tasks,
)

__all__ = [
    "lambda_handler",
    "summarize_tasks",
    "SummarizeTasksInput",
    "TaskSummary",
]
