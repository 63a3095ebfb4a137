from typing import Optional
from .block_range import BlockRange


class BatchPlanner:
    """
    Cut a bounded range into consecutive batches
    - ascending order
    - a block is handed out exactly once
    - generating past the end returns None
    """
    def __init__(self, block_range: BlockRange, batch_size: int):
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")

        self._next_block = block_range.start_block
        self._end_block = block_range.end_block
        self._batch_size = batch_size
        self._next_range_id = 0

    def next_batch(self) -> Optional[BlockRange]:
        # hard stop
        if self._next_block >= self._end_block:
            return None

        start = self._next_block
        end = min(start + self._batch_size, self._end_block)

        r = BlockRange(
            start_block=start,
            end_block=end,
            range_id=self._next_range_id,
        )

        self._next_block = end
        self._next_range_id += 1

        return r

    def __iter__(self):
        while (batch := self.next_batch()) is not None:
            yield batch

    @property
    def next_block(self) -> int:
        return self._next_block

    @property
    def exhausted(self) -> bool:
        return self._next_block >= self._end_block
