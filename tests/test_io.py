# tests/test_io.py
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import numpy as np
import scipy.io
import torch
import pytest

from gmm_ubm import GMM, readmat, savemat, split


def _trained_like_gmm():
    rng = np.random.RandomState(21)
    g = GMM(
        3,
        2,
        weights=torch.from_numpy(np.array([0.2, 0.3, 0.5])),
        means=torch.from_numpy(rng.randn(3, 2)),
        covars=torch.from_numpy(rng.rand(3, 2) + 0.5),
    )
    g.add_history("trained somewhere")
    return g


def test_roundtrip(tmp_path):
    g = _trained_like_gmm()
    path = str(tmp_path / "ubm.mat")
    nhist = len(g.history)

    savemat(path, g)
    assert len(g.history) == nhist + 1
    assert g.history[-1].s == f"GMM written to file {path}"

    r = readmat(path)
    assert (r.n, r.d, r.kind) == (g.n, g.d, g.kind)
    assert torch.equal(r.weights, g.weights)
    assert torch.equal(r.means, g.means)
    assert torch.equal(r.covars, g.covars)
    assert [h.s for h in r.history[:-1]] == [h.s for h in g.history]
    assert [h.t for h in r.history[:-1]] == pytest.approx([h.t for h in g.history])
    assert r.history[-1].s == f"GMM read from file {path}"


def test_roundtrip_single_component(tmp_path):
    g = GMM(1, 1, means=torch.tensor([[3.0]]), covars=torch.tensor([[2.0]]))
    path = str(tmp_path / "one.mat")
    savemat(path, g)
    r = readmat(path)
    assert r.weights.tolist() == [1.0]
    assert r.means.tolist() == [[3.0]]
    assert r.covars.tolist() == [[2.0]]


def test_loaded_model_is_usable(tmp_path):
    path = str(tmp_path / "ubm.mat")
    savemat(path, _trained_like_gmm())
    s = split(readmat(path))
    assert s.n == 6


def test_missing_history_gets_placeholder(tmp_path):
    path = str(tmp_path / "netlab.mat")
    scipy.io.savemat(
        path,
        {
            "gmm": {
                "ncentres": 2,
                "nin": 2,
                "covar_type": "diag",
                "priors": np.array([0.5, 0.5]),
                "centres": np.zeros((2, 2)),
                "covars": np.ones((2, 2)),
            }
        },
    )
    r = readmat(path)
    assert [h.s for h in r.history] == ["No original history", f"GMM read from file {path}"]


def test_full_covariance_file_is_rejected(tmp_path):
    path = str(tmp_path / "full.mat")
    scipy.io.savemat(
        path,
        {
            "gmm": {
                "ncentres": 1,
                "nin": 2,
                "covar_type": "full",
                "priors": np.array([1.0]),
                "centres": np.zeros((1, 2)),
                "covars": np.eye(2)[None],
            }
        },
    )
    with pytest.raises(NotImplementedError):
        readmat(path)


def test_unknown_type(tmp_path):
    path = str(tmp_path / "ubm.mat")
    savemat(path, _trained_like_gmm())
    with pytest.raises(TypeError):
        readmat(path, dict)


def test_multiline_description_is_saved_on_one_line(tmp_path):
    g = _trained_like_gmm()
    g.add_history("first line\nsecond line")
    path = str(tmp_path / "ubm.mat")
    savemat(path, g)
    r = readmat(path)
    assert len(r.history) == len(g.history) + 1
    assert "first line second line" in [h.s for h in r.history]


def test_history_length_mismatch_is_rejected(tmp_path):
    path = str(tmp_path / "broken.mat")
    scipy.io.savemat(
        path,
        {
            "gmm": {
                "ncentres": 1,
                "nin": 1,
                "covar_type": "diag",
                "priors": np.array([1.0]),
                "centres": np.zeros((1, 1)),
                "covars": np.ones((1, 1)),
                "history_s": "one\ntwo\nthree",
                "history_t": np.array([1.0, 2.0]),
            }
        },
    )
    with pytest.raises(ValueError):
        readmat(path)
