"""
Execution machinery: the worker pool interop calls run on.
"""

from .thread_pool import ThreadPool, Worker, WorkerState, Task

__all__ = ["ThreadPool", "Worker", "WorkerState", "Task"]
