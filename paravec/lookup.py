from typing import Optional, Sequence, Union

import numpy as np

# Lookup table layer: a (rows, cols) weight matrix with gather (forward) and scatter-add
# (backward) over row indices. Gradients passed to the backprop methods are already
# scaled by the learning rate. Indices are not range-checked; callers guarantee < rows.

Indices = Union[Sequence[int], np.ndarray]


class EmbeddingTable:
    """Embedding lookup table.

    Attributes:
        weights (np.ndarray): float32 matrix, shape (rows, cols).
        update (bool): Apply gradients in backprop; when False weights never change.
        learn_rate (Optional[float]): Per-layer learning rate override; None uses the global rate.
    """

    def __init__(self, rows: int, cols: int, dtype=np.float32):
        """Allocate a zero-initialized table.

        Args:
            rows: Number of rows (vocabulary size or paragraph count).
            cols: Row width (embedding or second-layer dimension).
            dtype: Weight dtype. Defaults to float32.

        Raises:
            ValueError: If cols is not positive or rows is negative.
            MemoryError: If the matrix cannot be allocated.
        """
        if rows < 0 or cols < 1:
            raise ValueError(f"Invalid table shape ({rows}, {cols})")
        self.weights = np.zeros((rows, cols), dtype=dtype)
        self.update = True
        self.learn_rate: Optional[float] = None

    @classmethod
    def from_array(cls, weights: np.ndarray) -> "EmbeddingTable":
        """Wrap an existing 2-D array (no copy when it is already float32 C-contiguous)."""
        weights = np.ascontiguousarray(weights, dtype=np.float32)
        if weights.ndim != 2:
            raise ValueError(f"Expected a 2-D array, got shape {weights.shape}")
        table = cls(0, weights.shape[1])
        table.weights = weights
        return table

    @property
    def rows(self) -> int:
        return self.weights.shape[0]

    @property
    def cols(self) -> int:
        return self.weights.shape[1]

    def rate(self, default: float) -> float:
        return default if self.learn_rate is None else self.learn_rate

    def init_uniform(self, rng: Optional[np.random.Generator] = None) -> None:
        """Fill with draws from U[-0.5/cols, 0.5/cols) (word2vec first-layer init)."""
        if rng is None:
            rng = np.random.default_rng()
        bound = 0.5 / self.cols
        self.weights[...] = rng.uniform(-bound, bound, size=self.weights.shape)

    def forward_one(self, index: int, out: np.ndarray) -> np.ndarray:
        out[:] = self.weights[index]
        return out

    def forward_avg(self, indices: Indices, out: np.ndarray) -> np.ndarray:
        """Elementwise mean of the rows at indices, written into out."""
        out[:] = self.weights[np.asarray(indices)].mean(axis=0)
        return out

    def forward_add(self, indices: Indices, out: np.ndarray, scale: float = 1.0) -> np.ndarray:
        """Accumulate scale * sum of rows into out (mixing rows of several tables)."""
        if len(indices):
            out += scale * self.weights[np.asarray(indices)].sum(axis=0)
        return out

    def forward_concat(self, indices: Indices, out: np.ndarray, offset: int = 0) -> np.ndarray:
        """Concatenate rows in order into out, starting at row-slot `offset`.

        Args:
            indices: Rows to copy, in window order.
            out: Flat output vector; slot k occupies out[k*cols:(k+1)*cols].
            offset: First slot to write; earlier slots are left untouched. Defaults to 0.

        Returns:
            out.
        """
        cols = self.cols
        n = len(indices)
        out[offset * cols:(offset + n) * cols] = self.weights[np.asarray(indices)].ravel()
        return out

    def forward_point(self, vector: np.ndarray, index: int) -> float:
        """Score one row: dot(weights[index], vector)."""
        return float(np.dot(self.weights[index], vector))

    def backprop_acc(self, vector: np.ndarray, index: int, grad: float, grad_acc: np.ndarray) -> None:
        """Second-layer backward step for one row.

        Accumulates grad * row into grad_acc (gradient at the input), then, if updatable,
        learns the row: row += grad * vector.

        Args:
            vector: The input to this layer (first-layer output).
            index: Row that produced the score.
            grad: Output gradient times learning rate.
            grad_acc: Input gradient accumulator (modified in place).
        """
        row = self.weights[index]
        grad_acc += grad * row
        if self.update:
            row += grad * vector

    def backprop_one(self, index: int, grad: np.ndarray) -> None:
        if not self.update:
            return
        self.weights[index] += grad

    def backprop_many(self, indices: Indices, grad: np.ndarray) -> None:
        """Add the whole gradient to every row at indices (repeated indices add repeatedly)."""
        if not self.update or not len(indices):
            return
        np.add.at(self.weights, np.asarray(indices), grad)

    def backprop_concat(self, indices: Indices, grad: np.ndarray, offset: int = 0) -> None:
        """Add to each row its own slice of a concatenated gradient, starting at slot offset."""
        if not self.update or not len(indices):
            return
        cols = self.cols
        n = len(indices)
        np.add.at(
            self.weights,
            np.asarray(indices),
            grad[offset * cols:(offset + n) * cols].reshape(n, cols),
        )
