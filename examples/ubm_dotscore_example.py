"""
Example: UBM training, MAP adaptation and dot-scoring

Trains a small universal background model by binary splitting, MAP-adapts it
to one "speaker", and scores same- and different-speaker test data.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import numpy as np
import torch
from gmm_ubm import CStats, dotscore, map_adapt, print_history, split_init

np.random.seed(123)
torch.manual_seed(123)

D, K = 4, 8


def speaker(centre, n):
    return centre + np.random.randn(n, D)


centres = [np.random.randn(D) * 3 for _ in range(6)]
background = np.concatenate([speaker(c, 300) for c in centres], axis=0)

print("="*80)
print("UBM training by binary splitting")
print("="*80)
ubm = split_init(K, background, n_iter=5, n_final=10, verbose=1)
print()
print(ubm)
print()

print("="*80)
print("MAP adaptation (means only, relevance 16)")
print("="*80)
enrol = speaker(centres[0], 200)
model = map_adapt(ubm, enrol, r=16.0)
print_history(model)
print()

print("="*80)
print("Dot-scoring")
print("="*80)
target = CStats.from_data(ubm, enrol)
same = CStats.from_data(ubm, speaker(centres[0], 100))
other = CStats.from_data(ubm, speaker(centres[1], 100))
print(f"same speaker:      {dotscore(target, same):.4f}")
print(f"different speaker: {dotscore(target, other):.4f}")
