"""
Co-appearance matrix (CAM) construction.

For every record and every pair of distinct attributes (i, j), the CAM counts
how often value ``a`` of attribute ``i`` appears together with value ``b`` of
attribute ``j``. Alongside it, the value-appearance table counts how many
records hold each value of each attribute.

Storage is one block per unordered attribute pair (i < j). Blocks are dense
``numpy`` arrays of shape (A_i, A_j) while A_i * A_j stays under the dense
block limit, and sparse ``{(a, b): count}`` mappings above it. Lookups for
i > j are served from block (j, i), so CAM(i,a,j,b) == CAM(j,b,i,a) always.

Construction is O(records * attributes^2) time. Memory is bounded by
attributes^2 * domain^2 for dense blocks, which is why the builder estimates
the cell count and refuses to allocate beyond ``max_cam_cells``.
"""

from itertools import combinations
from typing import Dict, Sequence, Tuple, Union

import numpy as np

from coappear.core.constants import (
    DEFAULT_DENSE_BLOCK_LIMIT,
    DEFAULT_MAX_CAM_CELLS,
    MISSING_CODE,
    STAGE_COAPPEARANCE,
)
from coappear.core.exceptions import DimensionMismatchError, ResourceLimitError
from coappear.core.logging_config import get_logger
from coappear.detection.generalizer import GeneralizedDataset

logger = get_logger(__name__)

SparseBlock = Dict[Tuple[int, int], int]
Block = Union[np.ndarray, SparseBlock]


class CoappearanceMatrix:
    """
    Read-only pairwise value co-occurrence counts.

    Attributes:
        domain_sizes: Domain size of each attribute
        value_appearances: One count array per attribute, indexed by value code
    """

    def __init__(
        self,
        domain_sizes: Sequence[int],
        value_appearances: Sequence[np.ndarray],
        blocks: Dict[Tuple[int, int], Block]
    ):
        self.domain_sizes = tuple(domain_sizes)
        self.value_appearances = tuple(value_appearances)
        self._blocks = blocks
        for counts in self.value_appearances:
            counts.setflags(write=False)
        for block in self._blocks.values():
            if isinstance(block, np.ndarray):
                block.setflags(write=False)

    @property
    def n_attributes(self) -> int:
        return len(self.domain_sizes)

    def value_appearance(self, attribute: int, value: int) -> int:
        """Number of records in which ``attribute`` holds ``value``."""
        return int(self.value_appearances[attribute][value])

    def is_dense(self, i: int, j: int) -> bool:
        """Whether the block for the attribute pair is stored densely."""
        return isinstance(self._blocks[self._key(i, j)], np.ndarray)

    def count(self, i: int, a: int, j: int, b: int) -> int:
        """
        Records where attribute ``i`` = ``a`` and attribute ``j`` = ``b``.

        Raises:
            ValueError: If ``i == j``
        """
        if i > j:
            i, a, j, b = j, b, i, a
        block = self._blocks[self._key(i, j)]
        if isinstance(block, np.ndarray):
            return int(block[a, b])
        return block.get((a, b), 0)

    def pair_counts(self, j: int, k: int, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        """
        Vectorized ``count(j, x[n], k, y[n])`` for arrays of value codes.

        Requires ``j < k`` and valid (non-missing) codes.
        """
        block = self._blocks[self._key(j, k)]
        if isinstance(block, np.ndarray):
            return block[x, y]
        return np.fromiter(
            (block.get((int(a), int(b)), 0) for a, b in zip(x, y)),
            dtype=np.int64,
            count=len(x)
        )

    def _key(self, i: int, j: int) -> Tuple[int, int]:
        if i == j:
            raise ValueError("Co-appearance is only defined for distinct attributes")
        return (i, j) if i < j else (j, i)


class CoappearanceMatrixBuilder:
    """
    Builds a CoappearanceMatrix from a generalized dataset in one pass.

    Example:
        >>> builder = CoappearanceMatrixBuilder(max_cam_cells=10_000_000)
        >>> cam = builder.build(generalized)
        >>> cam.count(0, 1, 2, 0)
        17
    """

    def __init__(
        self,
        max_cam_cells: int = DEFAULT_MAX_CAM_CELLS,
        dense_block_limit: int = DEFAULT_DENSE_BLOCK_LIMIT
    ):
        self.max_cam_cells = max_cam_cells
        self.dense_block_limit = dense_block_limit

    def estimate_cells(self, domain_sizes: Sequence[int], n_records: int) -> int:
        """
        Upper bound on stored CAM cells.

        Dense blocks count at full size, sparse blocks at most one entry per
        record.
        """
        total = 0
        for i, j in combinations(range(len(domain_sizes)), 2):
            cells = domain_sizes[i] * domain_sizes[j]
            total += cells if cells <= self.dense_block_limit else min(cells, n_records)
        return total

    def build(self, generalized: GeneralizedDataset) -> CoappearanceMatrix:
        """
        Count value appearances and pairwise co-appearances.

        Raises:
            DimensionMismatchError: If a code falls outside its attribute's domain
            ResourceLimitError: If the estimated size exceeds ``max_cam_cells``
        """
        codes = generalized.codes
        domain_sizes = generalized.domain_sizes
        n_records, n_attributes = codes.shape

        if len(domain_sizes) != n_attributes:
            raise DimensionMismatchError(
                "Domain size table does not match the dataset's attribute count",
                stage=STAGE_COAPPEARANCE,
                expected=n_attributes,
                actual=len(domain_sizes)
            )

        estimated = self.estimate_cells(domain_sizes, n_records)
        logger.info(f"Co-appearance matrix estimate: {estimated:,} cells across "
                    f"{n_attributes * (n_attributes - 1) // 2:,} attribute pairs")
        if estimated > self.max_cam_cells:
            raise ResourceLimitError(
                f"Co-appearance matrix would need {estimated:,} cells, "
                f"above the limit of {self.max_cam_cells:,}",
                estimated_cells=estimated,
                max_cells=self.max_cam_cells
            )

        valid = codes != MISSING_CODE
        value_appearances = []
        for i in range(n_attributes):
            column = codes[valid[:, i], i]
            if column.size and (column.min() < 0 or column.max() >= domain_sizes[i]):
                raise DimensionMismatchError(
                    f"Attribute {i} holds a value code outside its domain of {domain_sizes[i]}",
                    stage=STAGE_COAPPEARANCE,
                    expected=f"0..{domain_sizes[i] - 1}",
                    actual=f"{column.min()}..{column.max()}"
                )
            value_appearances.append(np.bincount(column, minlength=domain_sizes[i]).astype(np.int64))

        blocks: Dict[Tuple[int, int], Block] = {}
        sparse_pairs = 0
        for i, j in combinations(range(n_attributes), 2):
            both = valid[:, i] & valid[:, j]
            a = codes[both, i]
            b = codes[both, j]
            size_j = domain_sizes[j]
            flat = a * size_j + b
            cells = domain_sizes[i] * size_j
            if cells <= self.dense_block_limit:
                block = np.bincount(flat, minlength=cells).astype(np.int64)
                blocks[(i, j)] = block.reshape(domain_sizes[i], size_j)
            else:
                keys, counts = np.unique(flat, return_counts=True)
                blocks[(i, j)] = {
                    (int(key // size_j), int(key % size_j)): int(count)
                    for key, count in zip(keys, counts)
                }
                sparse_pairs += 1

        if sparse_pairs:
            logger.debug(f"{sparse_pairs} attribute pairs stored sparsely")

        return CoappearanceMatrix(domain_sizes, value_appearances, blocks)
