# gmm_ubm/_model.py
"""GMM parameter container with diagonal covariance.

Storage formats (same conventions as the rest of the package):
- weights: (K,)     mixing proportions, sum to 1
- means:   (K, D)   component centres
- covars:  (K, D)   per-component per-dimension variances

Ownership:
- em_() is the only operation that mutates a GMM (parameters + history).
- split(), map_adapt() and GMM.copy() return new models; the parent's tensors
  are never touched and the child's history is the parent's plus one record.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
import torch


KINDS = ("diag", "full")
WEIGHT_SUM_TOL = 1e-6


class VarianceFlooredWarning(UserWarning):
    """Raised by em_() when component variances had to be reset."""


def _check_kind(kind: str) -> None:
    if kind not in KINDS:
        raise ValueError(f"Unknown covariance kind={kind!r}")


def _require_diag(kind: str) -> None:
    _check_kind(kind)
    if kind != "diag":
        raise NotImplementedError(f"Unimplemented kind {kind!r}")


@dataclass(frozen=True)
class HistoryEntry:
    t: float
    s: str

    @classmethod
    def now(cls, s: str) -> "HistoryEntry":
        return cls(time.time(), s)


class GMM:
    """Gaussian mixture with diagonal covariance and an append-only history."""

    def __init__(
        self,
        n: int,
        d: int,
        kind: str = "diag",
        weights: Optional[torch.Tensor] = None,
        means: Optional[torch.Tensor] = None,
        covars: Optional[torch.Tensor] = None,
        history: Optional[List[HistoryEntry]] = None,
        dtype: torch.dtype = torch.float64,
        device=None,
    ) -> None:
        _check_kind(kind)
        if n <= 0:
            raise ValueError("n must be positive")
        if d <= 0:
            raise ValueError("d must be positive")

        self.n = int(n)
        self.d = int(d)
        self.kind = kind

        if weights is None:
            weights = torch.full((n,), 1.0 / n, dtype=dtype, device=device)
        if means is None:
            means = torch.zeros((n, d), dtype=dtype, device=device)
        if covars is None:
            covars = torch.ones((n, d), dtype=dtype, device=device)

        self.weights = torch.as_tensor(weights, dtype=dtype, device=device)
        self.means = torch.as_tensor(means, dtype=dtype, device=device)
        self.covars = torch.as_tensor(covars, dtype=dtype, device=device)
        self._check_shapes()

        if history is None:
            history = [HistoryEntry.now(f"Initialization n={n} d={d} kind={kind}")]
        self.history: List[HistoryEntry] = list(history)

    def _check_shapes(self) -> None:
        n, d = self.n, self.d
        if self.weights.shape != (n,):
            raise ValueError(f"weights must have shape (n,) = {(n,)}, got {tuple(self.weights.shape)}")
        if self.means.shape != (n, d):
            raise ValueError(f"means must have shape (n,d) = {(n, d)}, got {tuple(self.means.shape)}")
        if self.covars.shape != (n, d):
            raise ValueError(f"covars must have shape (n,d) = {(n, d)}, got {tuple(self.covars.shape)}")
        if not torch.all(self.weights >= 0):
            raise ValueError("weights must be non-negative")
        if abs(float(self.weights.sum()) - 1.0) > WEIGHT_SUM_TOL:
            raise ValueError(f"weights must sum to 1, got {float(self.weights.sum())}")
        if not torch.all(self.covars >= 0):
            raise ValueError("covars must be non-negative")

    @property
    def dtype(self) -> torch.dtype:
        return self.means.dtype

    @property
    def device(self) -> torch.device:
        return self.means.device

    # -----------------------
    # Construction
    # -----------------------

    @classmethod
    @torch.no_grad()
    def from_data(cls, x, dtype: torch.dtype = torch.float64) -> "GMM":
        """Single Gaussian with the sample mean and (unbiased) sample variance of x."""
        x = torch.as_tensor(x, dtype=dtype)
        if x.dim() == 1:
            x = x.reshape(-1, 1)
        nx, d = x.shape
        gmm = cls(1, d, dtype=dtype, device=x.device)
        gmm.means = x.mean(dim=0, keepdim=True)
        gmm.covars = x.var(dim=0, keepdim=True)
        gmm.add_history(f"Initialized single Gaussian with {nx} data points")
        return gmm

    def derive(self, s: str, weights, means, covars, n: Optional[int] = None) -> "GMM":
        """New model with the given parameters and this model's history plus `s`."""
        return GMM(
            self.n if n is None else n,
            self.d,
            self.kind,
            weights=weights,
            means=means,
            covars=covars,
            history=self.history + [HistoryEntry.now(s)],
            dtype=self.dtype,
            device=self.device,
        )

    def copy(self) -> "GMM":
        return self.derive("copy", self.weights.clone(), self.means.clone(), self.covars.clone())

    # -----------------------
    # Data / history helpers
    # -----------------------

    def as_data(self, x) -> torch.Tensor:
        """Convert x to a (nx, d) tensor on this model's dtype/device."""
        x = torch.as_tensor(x, dtype=self.dtype, device=self.device)
        if x.dim() == 1:
            x = x.reshape(-1, 1)
        if x.dim() != 2 or x.shape[1] != self.d:
            raise ValueError(f"data must have shape (nx, {self.d}), got {tuple(x.shape)}")
        return x

    def add_history(self, s: str) -> None:
        self.history.append(HistoryEntry.now(s))

    def __str__(self) -> str:
        lines = [f"GMM with {self.n} components in {self.d} dimensions and {self.kind} covariance"]
        means = self.means.cpu().numpy()
        covars = self.covars.cpu().numpy()
        for j in range(self.n):
            lines.append(f"Mix {j + 1}: weight {float(self.weights[j]):f}, mean:")
            lines.append(np.array2string(means[j]))
            lines.append("covariance:")
            lines.append(np.array2string(covars[j]))
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"GMM(n={self.n}, d={self.d}, kind={self.kind!r})"


def history_report(gmm: GMM) -> str:
    """One line per history record: seconds since the first record, then the description."""
    t0 = gmm.history[0].t
    return "\n".join(f"{h.t - t0:6.3f}\t{h.s}" for h in gmm.history)


def print_history(gmm: GMM) -> None:
    print(history_report(gmm))
