# gmm_ubm/_adapt.py
"""Maximum A Posteriori adaptation of a reference GMM (UBM) to new data."""

from __future__ import annotations

import torch

from ._model import GMM
from ._stats import stats


@torch.no_grad()
def map_adapt(
    gmm: GMM,
    x,
    r: float = 16.0,
    means: bool = True,
    weights: bool = False,
    covars: bool = False,
) -> GMM:
    """Return a MAP-adapted copy of gmm; gmm itself is left unchanged.

    alpha_j = N_j / (N_j + r). Each parameter group is either adapted or copied
    unchanged from gmm:
    - weights: alpha N/sum(N) + (1-alpha) w, renormalized
    - means:   alpha/N F + (1-alpha) mu
    - covars:  alpha/N S + (1-alpha)(var + mu^2) - mu'^2
    """
    X = gmm.as_data(x)
    n, F, S = stats(gmm, X, 2)
    alpha = n / (n + r)
    # alpha / n, finite for components without data
    scale = (1.0 / (n + r)).unsqueeze(1)
    beta = (1 - alpha).unsqueeze(1)

    if weights:
        w = alpha * n / n.sum() + (1 - alpha) * gmm.weights
        w = w / w.sum()
    else:
        w = gmm.weights.clone()

    if means:
        mu = scale * F + beta * gmm.means
    else:
        mu = gmm.means.clone()

    if covars:
        var = scale * S + beta * (gmm.covars + gmm.means ** 2) - mu ** 2
    else:
        var = gmm.covars.clone()

    groups = " ".join(
        name for name, on in (("means", means), ("weights", weights), ("covars", covars)) if on
    )
    return gmm.derive(
        f"MAP adapted with {X.shape[0]} data points relevance {r:3.1f} {groups}".rstrip(),
        w,
        mu,
        var,
    )
