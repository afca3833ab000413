"""
CreateTask Lambda

Creates a task page with a title and a plain-text description.
"""

from lambdas.create_task.handler import build_task_properties, create_task, lambda_handler

__all__ = [
    "lambda_handler",
    "create_task",
    "build_task_properties",
]
