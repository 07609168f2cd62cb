# gmm_ubm/_em.py
"""Fixed-budget EM training for diagonal GMMs.

The E-step walks the data in row blocks so peak memory is bounded by a
configurable budget rather than by the number of data points.
"""

from __future__ import annotations

import math
import warnings
from typing import List, Optional

import torch

from ._likelihood import post
from ._model import GMM, VarianceFlooredWarning, _require_diag


DEFAULT_MEM_BUDGET = 4 << 30  # bytes


def block_size_for(n_components: int, mem_budget: int = DEFAULT_MEM_BUDGET, itemsize: int = 8) -> int:
    """Rows per E-step block: mem_budget / ((3 + 3K) * itemsize), at least 1."""
    return max(1, int(math.floor(mem_budget / ((3 + 3 * n_components) * itemsize))))


@torch.no_grad()
def em_(
    gmm: GMM,
    x,
    n_iter: int = 10,
    varfloor: float = 1e-3,
    logll: bool = True,
    mem_budget: int = DEFAULT_MEM_BUDGET,
    block_size: Optional[int] = None,
    verbose: int = 0,
) -> List[float]:
    """Run n_iter EM iterations on gmm IN PLACE.

    Returns the log-likelihood history, one entry per iteration, normalized per
    data point and per dimension. With logll=False only the last entry is
    computed; the others stay 0.0.

    Variance flooring is per component: if any dimension of component j falls
    below varfloor, the whole row j is reset to the variances gmm had when em_()
    was called, and a VarianceFlooredWarning is issued.
    """
    _require_diag(gmm.kind)
    X = gmm.as_data(x)
    if n_iter < 1:
        raise ValueError("n_iter must be positive")

    nf, d = X.shape
    ng = gmm.n
    if block_size is None:
        block_size = block_size_for(ng, mem_budget, X.element_size())
    if block_size < 1:
        raise ValueError("block_size must be positive")

    initc = gmm.covars.clone()
    ll = [0.0] * n_iter
    dtype, device = gmm.dtype, gmm.device

    for i in range(n_iter):
        last = i == n_iter - 1

        # E-step
        denom = torch.zeros((ng,), dtype=dtype, device=device)
        sx = torch.zeros((ng, d), dtype=dtype, device=device)
        sxx = torch.zeros((ng, d), dtype=dtype, device=device)
        for b in range(0, nf, block_size):
            xx = X[b:b + block_size]
            p, a = post(gmm, xx)        # (nb,K)
            denom += p.sum(dim=0)
            sx += p.T @ xx
            sxx += p.T @ (xx * xx)
            if logll or last:
                ll[i] += float(torch.log(a @ gmm.weights).sum())

        # M-step
        # components without any responsibility keep their mean; their
        # variance comes out non-positive and is floored below
        empty = denom == 0
        safe = torch.where(empty, torch.ones_like(denom), denom).unsqueeze(1)
        means = sx / safe
        means[empty] = gmm.means[empty]
        gmm.weights = denom / nf
        gmm.means = means
        gmm.covars = sxx / safe - gmm.means ** 2

        # var flooring, NaN counts as too small
        too_small = torch.any(~(gmm.covars >= varfloor), dim=1)
        if too_small.any():
            warnings.warn(
                f"Variances had to be floored for components {too_small.nonzero().flatten().tolist()}",
                VarianceFlooredWarning,
                stacklevel=2,
            )
            gmm.covars[too_small] = initc[too_small]

        if verbose and (logll or last):
            print(f"  EM iteration {i + 1}/{n_iter}: avll = {ll[i] / (nf * d):.6f}")

    ll = [v / (nf * d) for v in ll]
    gmm.add_history(f"EM with {nf} data points {n_iter} iterations avll {ll[-1]:f}")
    return ll
