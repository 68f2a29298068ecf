"""File tree writer -- materializes a resolved workspace graph on disk.

Key classes:
    FileTreeWriter   - staged, idempotent, level-parallel writes
    WriteReport      - per-path outcomes and the run's exit code
    GenerationState  - recorded hashes of generator-owned files
"""

from .report import FileOutcome, FileStatus, WriteReport
from .state import GenerationState
from .writer import FileTreeWriter, PlannedFile

__all__ = [
    "FileOutcome",
    "FileStatus",
    "FileTreeWriter",
    "GenerationState",
    "PlannedFile",
    "WriteReport",
]
