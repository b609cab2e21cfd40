"""
Training package: incremental replay and bulk prototype re-import.

Components:
    - Trainer: Resumable, cursor-driven replay of the interaction log
    - NeuralImporter: Rebuild the prototype memory (blocking or asyncio)
"""

from chatbrain.training.neural_import import ImportProgress, ImportResult, NeuralImporter
from chatbrain.training.trainer import Trainer, TrainerTick

__all__ = [
    "ImportProgress",
    "ImportResult",
    "NeuralImporter",
    "Trainer",
    "TrainerTick",
]
