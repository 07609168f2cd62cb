"""Diagonal-covariance GMMs in PyTorch for UBM training, MAP adaptation and dot-scoring."""

from ._model import GMM, HistoryEntry, VarianceFlooredWarning, history_report, print_history
from ._likelihood import avll, llpg, post
from ._stats import CStats, cstats, stats
from ._em import DEFAULT_MEM_BUDGET, block_size_for, em_
from ._split import split, split_init
from ._adapt import map_adapt
from ._score import dotscore, dotscore_data
from ._io import readmat, savemat

__all__ = [
    "GMM",
    "HistoryEntry",
    "VarianceFlooredWarning",
    "history_report",
    "print_history",
    "avll",
    "llpg",
    "post",
    "CStats",
    "cstats",
    "stats",
    "DEFAULT_MEM_BUDGET",
    "block_size_for",
    "em_",
    "split",
    "split_init",
    "map_adapt",
    "dotscore",
    "dotscore_data",
    "readmat",
    "savemat",
]
