from .batch_executor import BatchContext, ParallelBatchExecutor, almost_all_cpus

__all__ = [
    "BatchContext",
    "ParallelBatchExecutor",
    "almost_all_cpus",
]
