"""
Detection pipeline components.

- DomainGeneralizer: reduces columns to bounded discrete domains
- CoappearanceMatrixBuilder: counts pairwise value co-appearances
- NoisyValueIdentifier: scores records and builds the noisy-cell matrix
- ResultAssembler: nulls noisy cells or adds the Noisy indicator
- NoiseDetector: runs the four stages in order
"""

from .generalizer import DomainGeneralizer, GeneralizedDataset
from .coappearance import CoappearanceMatrix, CoappearanceMatrixBuilder
from .nvi import NoisyValueIdentifier, NviResult
from .assembler import ResultAssembler

__all__ = [
    'DomainGeneralizer',
    'GeneralizedDataset',
    'CoappearanceMatrix',
    'CoappearanceMatrixBuilder',
    'NoisyValueIdentifier',
    'NviResult',
    'ResultAssembler',
]
