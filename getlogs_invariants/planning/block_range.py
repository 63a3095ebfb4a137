from dataclasses import dataclass


# Half-open interval [start_block, end_block)
@dataclass(frozen=True)
class BlockRange:
    start_block: int
    end_block: int
    range_id: int = 0

    def __post_init__(self):
        if self.start_block < 0:
            raise ValueError(f"start_block {self.start_block} < 0")
        if self.start_block > self.end_block:
            raise ValueError(
                f"start_block {self.start_block} > end_block {self.end_block}"
            )

    def __len__(self) -> int:
        return self.end_block - self.start_block

    def __iter__(self):
        return iter(range(self.start_block, self.end_block))

    def __contains__(self, block_number) -> bool:
        return self.start_block <= block_number < self.end_block

    @property
    def empty(self) -> bool:
        return self.start_block == self.end_block
