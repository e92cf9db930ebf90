from .background_task_runner import BackgroundTaskRunner, BackgroundTaskWorker

__all__ = [
    "BackgroundTaskRunner",
    "BackgroundTaskWorker",
]
