# gmm_ubm/_stats.py
"""Zeroth, first and second order statistics of data aligned to a GMM.

Statistics are ordered (n, d), one row per component:
- N: (n,)    soft counts
- F: (n, d)  sum_i gamma_ji x_i
- S: (n, d)  sum_i gamma_ji x_i^2

stats() returns uncentered statistics; cstats() centres and normalizes them
by the model's own means and variances (UBM-centered), which is what MAP
adaptation and dot-scoring consume.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

import torch

from ._model import GMM, _require_diag


def _check_order(order: int) -> None:
    if order not in (1, 2):
        raise ValueError(f"order must be 1 or 2, got {order!r}")


@torch.no_grad()
def stats(gmm: GMM, x, order: int = 2) -> Tuple[torch.Tensor, ...]:
    """Uncentered statistics (N, F) for order 1, (N, F, S) for order 2.

    The responsibilities are formed from the expanded Gaussian exponent
    mu*prec*x - 0.5*prec*x^2 rather than through llpg()/post(), kept in log
    space until the per-point max is removed; the results agree to
    floating-point tolerance.
    """
    _check_order(order)
    _require_diag(gmm.kind)
    X = gmm.as_data(x)
    d = gmm.d

    prec = 1.0 / gmm.covars                           # (n,d)
    mp = gmm.means * prec                             # (n,d)
    sm2p = torch.sum(mp * gmm.means, dim=1)           # (n,)
    log_norm = 0.5 * d * math.log(2 * math.pi) + 0.5 * torch.sum(torch.log(gmm.covars), dim=1)
    log_a = torch.log(gmm.weights) - log_norm - sm2p / 2  # (n,)

    xx = X * X                                        # (nx,d)
    pxx = xx @ prec.T                                 # (nx,n)
    mpx = X @ mp.T                                    # (nx,n)
    log_L = log_a.unsqueeze(0) + mpx - pxx / 2        # (nx,n)
    del pxx, mpx

    # shift each row by its max before exp; a row whose unshifted likelihoods
    # all underflow gets an all-zero responsibility row, as in post()
    m = log_L.max(dim=1, keepdim=True).values
    m = torch.where(torch.isfinite(m), m, torch.zeros_like(m))
    L = torch.exp(log_L - m)
    L = L * (torch.exp(m) > 0).to(L.dtype)
    denom = L.sum(dim=1, keepdim=True)
    gamma = (L / (denom + (denom == 0).to(denom.dtype))).T  # (n,nx)

    N = gamma.sum(dim=1)
    F = gamma @ X
    if order == 1:
        return N, F
    S = gamma @ xx
    return N, F, S


@torch.no_grad()
def cstats(gmm: GMM, x, order: int = 2) -> Tuple[torch.Tensor, ...]:
    """UBM-centered statistics (N, f) or (N, f, s)."""
    _check_order(order)
    if order == 1:
        N, F = stats(gmm, x, 1)
    else:
        N, F, S = stats(gmm, x, 2)
    Nmu = N.unsqueeze(1) * gmm.means
    f = (F - Nmu) / gmm.covars
    if order == 1:
        return N, f
    s = (S - (2 * F + Nmu) * gmm.means) / gmm.covars
    return N, f, s


@dataclass(frozen=True)
class CStats:
    """Centered statistics of one dataset against a reference GMM."""
    n: torch.Tensor
    f: torch.Tensor
    s: Optional[torch.Tensor] = None

    @classmethod
    def from_data(cls, gmm: GMM, x, order: int = 1) -> "CStats":
        return cls(*cstats(gmm, x, order))
