# gmm_ubm/_likelihood.py
"""Per-component log-likelihoods and posteriors for diagonal GMMs."""

from __future__ import annotations

import math
from typing import Tuple

import torch

from ._model import GMM, _require_diag


def _log_gaussian_prob_diag(
    X: torch.Tensor,
    means: torch.Tensor,
    covars: torch.Tensor,
) -> torch.Tensor:
    """Diag log N(X | means, covars), shape (N, K)."""
    N, D = X.shape
    K, D2 = means.shape
    assert D == D2
    assert covars.shape == (K, D)

    diff = X.unsqueeze(1) - means.unsqueeze(0)              # (N,K,D)
    mahal = torch.sum(diff * diff / covars.unsqueeze(0), dim=2)  # (N,K)

    # log((2pi)^(D/2) * sqrt(prod_d var)) without forming the product
    normalization = 0.5 * D * math.log(2 * math.pi) + 0.5 * torch.sum(torch.log(covars), dim=1)  # (K,)

    return -0.5 * mahal - normalization.unsqueeze(0)


@torch.no_grad()
def llpg(gmm: GMM, x) -> torch.Tensor:
    """ll[i, j] = log p(x_i | component j), shape (nx, n)."""
    _require_diag(gmm.kind)
    X = gmm.as_data(x)
    return _log_gaussian_prob_diag(X, gmm.means, gmm.covars)


@torch.no_grad()
def post(gmm: GMM, x) -> Tuple[torch.Tensor, torch.Tensor]:
    """Posterior responsibilities and per-component likelihoods.

    Returns (p, a), both (nx, n): a = exp(llpg) and p[i, j] = w_j a_ij / sum_k w_k a_ik.
    A row whose weighted likelihoods underflow to exactly zero gets denominator 1,
    so that point's posterior row is all zeros instead of NaN.
    """
    a = torch.exp(llpg(gmm, x))
    p = a * gmm.weights.unsqueeze(0)
    sp = p.sum(dim=1, keepdim=True)
    sp = sp + (sp == 0).to(sp.dtype)
    return p / sp, a


@torch.no_grad()
def avll(gmm: GMM, x) -> float:
    """Average log-likelihood per data point and per dimension."""
    a = torch.exp(llpg(gmm, x))
    llpf = torch.log(a @ gmm.weights)
    return float(llpf.mean() / gmm.d)
