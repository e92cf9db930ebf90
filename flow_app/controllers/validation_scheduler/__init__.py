from .validation_scheduler_bridge import ValidationSchedulerBridge, ValidatorCallable

__all__ = [
    "ValidatorCallable",
    "ValidationSchedulerBridge",
]
