"""
Force Simulation

Velocity-Verlet many-body simulation over cluster representatives, with the
usual link/charge pair:

    charge   every pair repels with strength / distance
    link     every cluster edge pulls its ends toward LINK_DISTANCE
    decay    alpha cools geometrically, velocities lose VELOCITY_DECAY per tick

There is no centering force. Repulsion is approximated on a uniform grid
rebuilt every tick: pairs whose cell centroid lies within NEAR_CELLS cell
widths are summed exactly, every farther cell acts through its centroid and
member count. Cost per tick is roughly linear in the node count for spread-out
layouts, so several thousand clusters lay out in seconds.
"""

import itertools
import math
from typing import Optional

import numpy as np
from scipy.spatial import cKDTree

CHARGE_STRENGTH = -250.0
LINK_DISTANCE = 200.0
LINK_STRENGTH = 0.3
VELOCITY_DECAY = 0.4
ALPHA_MIN = 0.001
ALPHA_DECAY = 1.0 - ALPHA_MIN ** (1.0 / 300)
DISTANCE_MIN2 = 1.0
NODES_PER_CELL = 8
NEAR_CELLS = 2.0
FAR_FIELD_BLOCK = 512


def _far_field(pos: np.ndarray, points: np.ndarray, mass: np.ndarray) -> np.ndarray:
    """Sum of mass * d / |d|^2 from every point, evaluated in row blocks."""
    out = np.zeros_like(pos)
    for start in range(0, len(pos), FAR_FIELD_BLOCK):
        stop = start + FAR_FIELD_BLOCK
        d = points[None, :, :] - pos[start:stop, None, :]
        d2 = np.maximum((d ** 2).sum(axis=2), DISTANCE_MIN2)
        out[start:stop] = (d * (mass / d2)[:, :, None]).sum(axis=1)
    return out


class ForceSimulation:
    """
    Many-body plus link simulation on an (n, 2) position array.

    ``links`` is an (m, 2) array of node indices. Optional ``weights`` scale
    each link's strength relative to the heaviest link. Positions are
    updated in place; ``run`` returns them.
    """

    def __init__(
        self,
        positions: np.ndarray,
        links: Optional[np.ndarray] = None,
        weights: Optional[np.ndarray] = None,
    ) -> None:
        self.pos = np.array(positions, dtype=float).reshape(-1, 2)
        self.vel = np.zeros_like(self.pos)
        self.alpha = 1.0
        n = len(self.pos)
        if links is None or len(links) == 0:
            self.links = np.zeros((0, 2), dtype=int)
            self.bias = np.zeros(0)
            self.strength = np.zeros(0)
        else:
            self.links = np.asarray(links, dtype=int).reshape(-1, 2)
            count = np.bincount(self.links.ravel(), minlength=n).astype(float)
            source, target = self.links[:, 0], self.links[:, 1]
            self.bias = count[source] / (count[source] + count[target])
            if weights is None:
                self.strength = np.full(len(self.links), LINK_STRENGTH)
            else:
                w = np.asarray(weights, dtype=float)
                self.strength = LINK_STRENGTH * w / max(float(w.max()), 1e-9)

    def run(self, iterations: int) -> np.ndarray:
        for _ in range(iterations):
            self.tick()
        return self.pos

    def tick(self) -> None:
        self.alpha += -self.alpha * ALPHA_DECAY
        self._apply_charge()
        self._apply_links()
        self.vel *= 1.0 - VELOCITY_DECAY
        self.pos += self.vel

    def _apply_links(self) -> None:
        if not len(self.links):
            return
        source, target = self.links[:, 0], self.links[:, 1]
        delta = (self.pos[target] + self.vel[target]) - (self.pos[source] + self.vel[source])
        length = np.hypot(delta[:, 0], delta[:, 1])
        safe = np.where(length > 0, length, 1.0)
        factor = (length - LINK_DISTANCE) / safe * self.alpha * self.strength
        delta *= factor[:, None]

        n = len(self.pos)
        for axis in (0, 1):
            self.vel[:, axis] -= np.bincount(target, weights=delta[:, axis] * self.bias, minlength=n)
            self.vel[:, axis] += np.bincount(source, weights=delta[:, axis] * (1.0 - self.bias), minlength=n)

    def _apply_charge(self) -> None:
        pos = self.pos
        n = len(pos)
        if n < 2:
            return

        lo = pos.min(axis=0)
        span = float((pos.max(axis=0) - lo).max()) or 1.0
        grid = max(1, int(math.ceil(math.sqrt(n / NODES_PER_CELL))))
        cell_size = span / grid
        ij = np.minimum(((pos - lo) / cell_size).astype(int), grid - 1)
        cells, inverse, counts = np.unique(ij[:, 0] * grid + ij[:, 1], return_inverse=True, return_counts=True)
        inverse = inverse.ravel()
        centroid = np.zeros((len(cells), 2))
        np.add.at(centroid, inverse, pos)
        centroid /= counts[:, None]
        mass = counts.astype(float)

        force = _far_field(pos, centroid, mass)

        # Near cells: swap the centroid term for exact member sums.
        # A node's own cell is always near (cell diagonal < NEAR_CELLS widths).
        hits = cKDTree(centroid).query_ball_point(pos, NEAR_CELLS * cell_size)
        lengths = np.fromiter((len(h) for h in hits), dtype=int, count=n)
        near_i = np.repeat(np.arange(n), lengths)
        near_c = np.fromiter(itertools.chain.from_iterable(hits), dtype=int, count=int(lengths.sum()))

        d = centroid[near_c] - pos[near_i]
        d2 = np.maximum((d ** 2).sum(axis=1), DISTANCE_MIN2)
        approx = d * (mass[near_c] / d2)[:, None]

        order = np.argsort(inverse, kind="stable")
        starts = np.concatenate(([0], np.cumsum(counts)[:-1]))
        reps = counts[near_c]
        total = int(reps.sum())
        offsets = np.arange(total) - np.repeat(np.cumsum(reps) - reps, reps)
        pair_i = np.repeat(near_i, reps)
        pair_j = order[np.repeat(starts[near_c], reps) + offsets]
        keep = pair_i != pair_j
        pair_i, pair_j = pair_i[keep], pair_j[keep]

        e = pos[pair_j] - pos[pair_i]
        e2 = np.maximum((e ** 2).sum(axis=1), DISTANCE_MIN2)
        exact = e / e2[:, None]

        for axis in (0, 1):
            force[:, axis] -= np.bincount(near_i, weights=approx[:, axis], minlength=n)
            force[:, axis] += np.bincount(pair_i, weights=exact[:, axis], minlength=n)

        self.vel += force * (CHARGE_STRENGTH * self.alpha)
