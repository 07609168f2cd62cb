# gmm_ubm/_io.py
"""Exchange of GMMs with Octave/Matlab through MAT files.

The layout follows good old Netlab's gmm struct (ncentres, nin, covar_type,
priors, centres, covars), plus two parallel history arrays.
"""

from __future__ import annotations

import time

import numpy as np
import scipy.io
import torch

from ._model import GMM, HistoryEntry, _check_kind


def savemat(file, gmm: GMM) -> None:
    """Write gmm to file; appends a "written to file" record to gmm.history first.

    Newlines inside history descriptions are written as spaces.
    """
    gmm.add_history(f"GMM written to file {file}")
    scipy.io.savemat(
        file,
        {
            "gmm": {
                "ncentres": gmm.n,
                "nin": gmm.d,
                "covar_type": gmm.kind,
                "priors": gmm.weights.cpu().numpy(),
                "centres": gmm.means.cpu().numpy(),
                "covars": gmm.covars.cpu().numpy(),
                # one line per record
                "history_s": "\n".join(h.s.replace("\n", " ") for h in gmm.history),
                "history_t": np.array([h.t for h in gmm.history], dtype=np.float64),
            }
        },
    )


def readmat(file, t=GMM) -> GMM:
    if t is not GMM:
        raise TypeError(f"Unknown type {t!r}")

    g = scipy.io.loadmat(file, squeeze_me=True, simplify_cells=True)["gmm"]
    n = int(g["ncentres"])
    d = int(g["nin"])
    kind = str(g["covar_type"])
    _check_kind(kind)
    if kind != "diag":
        raise NotImplementedError(f"Unimplemented kind {kind!r}")

    weights = torch.from_numpy(np.asarray(g["priors"], dtype=np.float64).reshape(n))
    means = torch.from_numpy(np.asarray(g["centres"], dtype=np.float64).reshape(n, d))
    covars = torch.from_numpy(np.asarray(g["covars"], dtype=np.float64).reshape(n, d))

    hist_s = str(g.get("history_s", "No original history")).split("\n")
    if "history_t" in g:
        hist_t = np.atleast_1d(np.asarray(g["history_t"], dtype=np.float64))
    else:
        hist_t = np.full(len(hist_s), time.time())
    if len(hist_t) != len(hist_s):
        raise ValueError(
            f"history has {len(hist_t)} timestamps but {len(hist_s)} descriptions in {file}"
        )
    history = [HistoryEntry(float(ht), hs) for ht, hs in zip(hist_t, hist_s)]
    history.append(HistoryEntry.now(f"GMM read from file {file}"))

    return GMM(n, d, kind, weights=weights, means=means, covars=covars, history=history)
