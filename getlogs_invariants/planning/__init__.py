from .block_range import BlockRange
from .range_planner import BatchPlanner

__all__ = [
    "BlockRange",
    "BatchPlanner",
]
