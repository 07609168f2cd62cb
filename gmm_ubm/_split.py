# gmm_ubm/_split.py
"""Binary-splitting initialization.

Start from a single Gaussian and double the number of components with
split() followed by a few EM iterations, until the requested size is reached.
Deterministic, but not particularly good compared to k-means style seeding.
"""

from __future__ import annotations

import math
from typing import Optional

import torch

from ._em import DEFAULT_MEM_BUDGET, em_
from ._likelihood import avll
from ._model import GMM, _require_diag


@torch.no_grad()
def split(gmm: GMM, minweight: float = 1e-5, covfactor: float = 0.2, verbose: int = 0) -> GMM:
    """Return a new GMM with 2n components; gmm itself is left unchanged.

    Components lighter than minweight are first moved next to the heaviest
    components, the pair sharing their combined weight equally. Then component i becomes children
    2i and 2i+1 at mean -/+ covfactor*sqrt(var), shifted along all dimensions
    at once, each with half the parent weight and the parent variance.
    """
    _require_diag(gmm.kind)
    w = gmm.weights.clone()
    mu = gmm.means.clone()
    var = gmm.covars

    maxi = torch.argsort(w, descending=True)
    off = torch.nonzero(w < minweight).flatten()
    if len(off) > 0 and verbose:
        print("Removing Gaussians with no data")
    for o, m in zip(off.tolist(), maxi.tolist()):
        shift = covfactor * torch.sqrt(var[m])
        w[m] = w[o] = (w[m] + w[o]) / 2
        mu[o] = mu[m] + shift
        mu[m] = mu[m] - shift

    shift = covfactor * torch.sqrt(var)                  # (n,d)
    new_w = torch.repeat_interleave(w / 2, 2)            # (2n,)
    new_mu = torch.stack([mu - shift, mu + shift], dim=1).reshape(2 * gmm.n, gmm.d)
    new_var = torch.repeat_interleave(var, 2, dim=0)

    return gmm.derive(f"split to {2 * gmm.n} Gaussians", new_w, new_mu, new_var, n=2 * gmm.n)


@torch.no_grad()
def split_init(
    n: int,
    x,
    n_iter: int = 10,
    n_final: Optional[int] = None,
    varfloor: float = 1e-3,
    minweight: float = 1e-5,
    covfactor: float = 0.2,
    mem_budget: int = DEFAULT_MEM_BUDGET,
    block_size: Optional[int] = None,
    verbose: int = 0,
    dtype: torch.dtype = torch.float64,
) -> GMM:
    """Train an n-component GMM (n a power of two) by repeated split + EM."""
    if n < 1:
        raise ValueError("n must be positive")
    log2n = int(round(math.log2(n)))
    if 2 ** log2n != n:
        raise ValueError(f"n must be a power of two, got {n}")
    if n_final is None:
        n_final = n_iter

    gmm = GMM.from_data(x, dtype=dtype)
    tll = [avll(gmm, x)]
    if verbose:
        print(f"0: avll = {tll[-1]:.6f}")

    for i in range(1, log2n + 1):
        gmm = split(gmm, minweight=minweight, covfactor=covfactor, verbose=verbose)
        ll = em_(
            gmm,
            x,
            n_iter=n_final if i == log2n else n_iter,
            varfloor=varfloor,
            logll=True,
            mem_budget=mem_budget,
            block_size=block_size,
            verbose=max(verbose - 1, 0),
        )
        tll.append(ll[-1])
        if verbose:
            print(f"{i}: avll = {tll[-1]:.6f}")

    if verbose:
        print(f"avll per stage: {tll}")
    return gmm
