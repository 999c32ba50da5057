from typing import List, Sequence

import numpy as np
import pytest


class RecordingHighlighter:
    """Stands in for the scene widget; records every highlight call."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.current: List[int] = []

    def clear_highlight(self) -> None:
        self.calls.append(("clear",))
        self.current = []

    def highlight_points(self, points, indices: Sequence[int]) -> None:
        self.calls.append(("highlight", np.array(points), list(indices)))
        self.current = list(indices)


@pytest.fixture
def rng():
    return np.random.default_rng(20240518)


@pytest.fixture
def unit_points():
    return np.array(
        [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0], [5.0, 5.0, 5.0]]
    )


@pytest.fixture
def highlighter():
    return RecordingHighlighter()


@pytest.fixture
def brute_force():
    """Reference k-NN: stable sort by Euclidean distance, ties in input order."""

    def _nearest(points, query, count) -> List[int]:
        q = np.asarray(query, dtype=np.float64)
        distances = [float(np.linalg.norm(p - q)) for p in np.asarray(points, dtype=np.float64)]
        order = np.argsort(np.array(distances), kind="stable")
        return [int(i) for i in order[:count]]

    return _nearest
