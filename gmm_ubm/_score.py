# gmm_ubm/_score.py
"""Dot-scoring: linear approximation of the GMM/UBM log-likelihood ratio.

Scores test data y against the MAP-adapted model of x using only centered
first-order statistics of both against the same UBM.
"""

from __future__ import annotations

import torch

from ._model import GMM
from ._stats import CStats


@torch.no_grad()
def dotscore(x: CStats, y: CStats, r: float = 1.0) -> float:
    return float(torch.sum(x.f / (x.n + r).unsqueeze(1) * y.f))


def dotscore_data(gmm: GMM, x, y, r: float = 1.0) -> float:
    """dotscore() directly from the UBM and two raw datasets."""
    return dotscore(CStats.from_data(gmm, x), CStats.from_data(gmm, y), r)
