from typing import Iterator, Optional

import numpy as np

from paravec.lookup import EmbeddingTable
from paravec.vocab import NEG_TABLE_POWER, NEG_TABLE_SIZE, START_SYMBOL, VocabEntry, Vocabulary

# Output objectives: hierarchical softmax over the Huffman tree and negative sampling.
# Both score the first-layer output h against rows of their own table, learn those rows,
# and accumulate the gradient for the first layer into grad_acc. Scores outside
# [-MAX_EXP, MAX_EXP] never reach the sigmoid.

MAX_EXP = 6
SIGMOID_TABLE_SIZE = 10000


def _sigmoid_table(size: int = SIGMOID_TABLE_SIZE) -> np.ndarray:
    """Precomputed sigmoid over [-MAX_EXP, MAX_EXP) split evenly into size entries."""
    e = np.exp((np.arange(size, dtype=np.float64) / size * 2 - 1) * MAX_EXP)
    return e / (e + 1)


_SIGMOID = _sigmoid_table().tolist()


def sigmoid(x: float) -> float:
    """Table sigmoid; 1 at or above MAX_EXP, 0 at or below -MAX_EXP."""
    if x >= MAX_EXP:
        return 1.0
    if x <= -MAX_EXP:
        return 0.0
    idx = int((x + MAX_EXP) * (SIGMOID_TABLE_SIZE / MAX_EXP / 2))
    return _SIGMOID[min(idx, SIGMOID_TABLE_SIZE - 1)]


class NegativeSamplingTable:
    """Unigram^0.75 noise distribution as a flat index table, shared read-only by workers.

    Attributes:
        table (np.ndarray): Vocabulary indices, int32.
        vocab_size (int): V.
        sentinel (int): Index redrawn uniformly from [1, V) when hit (the start symbol), or -1.
    """

    def __init__(self, vocab: Vocabulary, size: int = NEG_TABLE_SIZE, power: float = NEG_TABLE_POWER):
        self.table = vocab.negative_table(size, power)
        self.vocab_size = len(vocab)
        self.sentinel = vocab.word2id.get(START_SYMBOL, -1)

    def __len__(self) -> int:
        return len(self.table)

    def resolve(self, slot: int, rng: np.random.Generator) -> int:
        target = int(self.table[slot])
        if target == self.sentinel and self.vocab_size > 1:
            target = int(rng.integers(1, self.vocab_size))
        return target

    def draw(self, rng: np.random.Generator) -> int:
        return self.resolve(int(rng.integers(len(self.table))), rng)


def negative_samples(
    neg_table: NegativeSamplingTable,
    target: int,
    negative: int,
    rng: np.random.Generator,
) -> Iterator[int]:
    """Yield up to `negative` noise indices; draws equal to target are skipped, not redrawn."""
    for slot in rng.integers(0, len(neg_table), size=negative).tolist():
        sample = neg_table.resolve(slot, rng)
        if sample == target:
            continue
        yield sample


def negative_gradient(score: float, label: int, learn_rate: float) -> Optional[float]:
    """Gradient (times learning rate) of one negative-sampling candidate.

    Inside the sigmoid bounds this is (label - sigmoid(score)) * lr. Outside, the sigmoid is
    taken as exactly 0 or 1 without being evaluated: a candidate already saturated on the
    side of its label gets no update (None), one saturated on the opposite side gets
    +lr (label 1) or -lr (label 0).

    Args:
        score: Pre-activation score.
        label: 1 for the target, 0 for a noise word.
        learn_rate: Learning rate.

    Returns:
        The gradient, or None when the candidate is skipped.
    """
    if score >= MAX_EXP:
        return None if label == 1 else -learn_rate
    if score <= -MAX_EXP:
        return learn_rate if label == 1 else None
    return (label - sigmoid(score)) * learn_rate


def hierarchical_softmax(
    table: EmbeddingTable,
    h: np.ndarray,
    target: VocabEntry,
    learn_rate: float,
    grad_acc: np.ndarray,
) -> None:
    """One step along the target's Huffman path.

    For each (code, point): score = h . table[point]; saturated scores are skipped;
    otherwise error = code - sigmoid(score) and the gradient is (1 - error) * lr.

    Args:
        table: HS table, one row per internal node.
        h: First-layer output.
        target: The word to predict (code/point arrays).
        learn_rate: Learning rate; the table's own override wins when set.
        grad_acc: First-layer gradient accumulator (modified in place).
    """
    lr = table.rate(learn_rate)
    for code, point in zip(target.code.tolist(), target.point.tolist()):
        score = table.forward_point(h, point)
        if score >= MAX_EXP or score <= -MAX_EXP:
            continue
        error = code - sigmoid(score)
        grad = (1.0 - error) * lr
        table.backprop_acc(h, point, grad, grad_acc)


def negative_sampling(
    table: EmbeddingTable,
    neg_table: NegativeSamplingTable,
    negative: int,
    h: np.ndarray,
    target: int,
    learn_rate: float,
    grad_acc: np.ndarray,
    rng: np.random.Generator,
) -> None:
    """Score the target (label 1) and `negative` noise words (label 0).

    Args:
        table: NEG table, one row per vocabulary word.
        neg_table: Noise distribution.
        negative: Number of noise draws.
        h: First-layer output.
        target: Index of the word to predict.
        learn_rate: Learning rate; the table's own override wins when set.
        grad_acc: First-layer gradient accumulator (modified in place).
        rng: Random generator for the draws.
    """
    lr = table.rate(learn_rate)
    grad = negative_gradient(table.forward_point(h, target), 1, lr)
    if grad is not None:
        table.backprop_acc(h, target, grad, grad_acc)

    for sample in negative_samples(neg_table, target, negative, rng):
        grad = negative_gradient(table.forward_point(h, sample), 0, lr)
        if grad is None:
            continue
        table.backprop_acc(h, sample, grad, grad_acc)
