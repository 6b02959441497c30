from typing import List, Optional, Tuple

import numpy as np

from paravec.options import ModelType, TrainOptions
from paravec.vocab import START_SYMBOL, VocabEntry, Vocabulary

# Context generation: turn a subsampled line into (target, window, is_paragraph) examples
# written into a preallocated arena that is reused line after line.


class Context:
    """One training example.

    Attributes:
        target (VocabEntry): The word to predict.
        window (np.ndarray): Input indices; only the first `size` are valid.
        is_paragraph (np.ndarray): window[k] is a paragraph-table row when True, else a word row.
        size (int): Number of valid window entries.
    """

    __slots__ = ("target", "window", "is_paragraph", "size")

    def __init__(self, max_size: int):
        self.target: Optional[VocabEntry] = None
        self.window = np.full(max_size, -1, dtype=np.int64)
        self.is_paragraph = np.zeros(max_size, dtype=bool)
        self.size = 0

    @property
    def indices(self) -> np.ndarray:
        return self.window[:self.size]

    @property
    def word_indices(self) -> np.ndarray:
        return self.window[:self.size][~self.is_paragraph[:self.size]]

    @property
    def paragraph_indices(self) -> np.ndarray:
        return self.window[:self.size][self.is_paragraph[:self.size]]

    def __repr__(self) -> str:
        word = self.target.word if self.target is not None else None
        return f"Context(target={word!r}, window={self.indices.tolist()})"


class ContextArena:
    """Per-worker pool of Context buffers, one slot per example of the longest line."""

    def __init__(self, n_contexts: int, max_size: int):
        self.max_size = max_size
        self.contexts: List[Context] = [Context(max_size) for _ in range(n_contexts)]

    def __len__(self) -> int:
        return len(self.contexts)

    def __getitem__(self, index: int) -> Context:
        return self.contexts[index]

    def reserve(self, n_contexts: int) -> None:
        """Grow the pool to at least n_contexts slots."""
        while len(self.contexts) < n_contexts:
            self.contexts.append(Context(self.max_size))


def subsample_line(
    word_ids: np.ndarray,
    counts: np.ndarray,
    total_words: int,
    sample: float,
    rng: np.random.Generator,
) -> Tuple[np.ndarray, int]:
    """Randomly drop frequent words (word2vec subsampling).

    A word with count c is kept with probability (sqrt(c / (s*T)) + 1) * (s*T) / c, where s is
    the sample rate and T the total word count.

    Args:
        word_ids: Vocabulary indices of the line.
        counts: Vocabulary counts, shape (V,).
        total_words: Total word count of the training corpus.
        sample: Subsampling rate; <= 0 keeps every word.
        rng: Random generator.

    Returns:
        Tuple of (kept word ids, number of dropped words).
    """
    word_ids = np.asarray(word_ids, dtype=np.int64)
    if sample <= 0 or len(word_ids) == 0:
        return word_ids, 0
    threshold = sample * max(total_words, 1)
    c = np.maximum(counts[word_ids], 1.0)
    keep_prob = (np.sqrt(c / threshold) + 1.0) * threshold / c
    keep = keep_prob >= rng.random(len(word_ids))
    kept = word_ids[keep]
    return kept, len(word_ids) - len(kept)


class ContextGenerator:
    """Windowing policy of one model type.

    CBOW/Skipgram: symmetric word window around each position, clipped at line boundaries.
    PVDBOW: the paragraph id alone predicts every word (with dbow_words, the word window too).
    PVDM: word window plus a trailing paragraph slot.
    PVDM-concat: paragraph in slot 0, then exactly 2*window word slots; slots past a line
    boundary hold the padding row so the concatenation has a fixed width.
    """

    def __init__(
        self,
        model_type: ModelType,
        window: int,
        vocab: Vocabulary,
        random_windows: bool = False,
        dbow_words: bool = False,
    ):
        """Create a generator.

        Args:
            model_type: The model whose policy to apply.
            window: Half-window size.
            vocab: Vocabulary used to resolve target entries and the padding row.
            random_windows: Reduced window drawn from [1, window] per position; ignored for
                PVDM-concat. Defaults to False.
            dbow_words: PVDBOW contexts also contain the word window. Defaults to False.

        Raises:
            ValueError: On an unknown model type, window < 1, or PVDM-concat over a
                vocabulary without the start symbol (its padding row).
        """
        self.model_type = ModelType.parse(model_type)
        if window < 1:
            raise ValueError(f"window must be >= 1, got {window}")
        if self.model_type.concat and START_SYMBOL not in vocab:
            raise ValueError(
                f"{self.model_type.value} pads with {START_SYMBOL!r}, which is not in the vocabulary"
            )
        self.window = window
        self.vocab = vocab
        self.pad_index = vocab.start_index
        self.paragraph = self.model_type.learns_paragraphs
        self.fixed = self.model_type.concat
        self.random_windows = random_windows and not self.fixed
        self.include_words = self.model_type is not ModelType.PVDBOW or dbow_words

    @classmethod
    def from_options(cls, options: TrainOptions, vocab: Vocabulary) -> "ContextGenerator":
        return cls(
            options.model_type,
            options.window,
            vocab,
            random_windows=options.random_windows,
            dbow_words=options.dbow_words,
        )

    @property
    def max_size(self) -> int:
        return 2 * self.window + (1 if self.paragraph else 0)

    def create_arena(self, n_contexts: int) -> ContextArena:
        return ContextArena(n_contexts, self.max_size)

    def generate(
        self,
        word_ids: np.ndarray,
        paragraph_id: int,
        arena: ContextArena,
        rng: Optional[np.random.Generator] = None,
    ) -> int:
        """Write one context per line position into the arena.

        Args:
            word_ids: The (subsampled) line as vocabulary indices.
            paragraph_id: Row of this line in the paragraph table (ignored by word models).
            arena: Destination buffers; grown if the line is longer than expected.
            rng: Random generator for reduced windows. Defaults to None.

        Returns:
            Number of contexts written: len(word_ids), or 0 for lines shorter than 2.
        """
        L = len(word_ids)
        if L < 2:
            return 0
        arena.reserve(L)
        w = self.window
        entries = self.vocab.entries
        if self.random_windows and rng is None:
            rng = np.random.default_rng()

        for i in range(L):
            ctx = arena[i]
            ctx.target = entries[word_ids[i]]
            window = ctx.window
            flags = ctx.is_paragraph
            k = 0
            if self.fixed:
                window[0] = paragraph_id
                flags[0] = True
                k = 1
                for j in range(i - w, i + w + 1):
                    if j == i:
                        continue
                    window[k] = word_ids[j] if 0 <= j < L else self.pad_index
                    flags[k] = False
                    k += 1
            else:
                if self.include_words:
                    b = int(rng.integers(1, w + 1)) if self.random_windows else w
                    before = word_ids[max(0, i - b):i]
                    after = word_ids[i + 1:min(L, i + b + 1)]
                    n = len(before) + len(after)
                    window[:len(before)] = before
                    window[len(before):n] = after
                    flags[:n] = False
                    k = n
                if self.paragraph:
                    window[k] = paragraph_id
                    flags[k] = True
                    k += 1
            ctx.size = k
        return L
