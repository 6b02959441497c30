from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

# Vocabulary: words sorted by count, Huffman codes/points for hierarchical softmax,
# and the unigram^0.75 table for negative sampling (Mikolov et al.).

START_SYMBOL = "</s>"
NEG_TABLE_SIZE = 1_000_000
NEG_TABLE_POWER = 0.75


class VocabEntry:
    """A vocabulary item.

    Attributes:
        word (str): The token.
        index (int): Row of this word in the word and objective tables.
        count (int): Corpus frequency.
        code (np.ndarray): Huffman code bits, root to leaf (uint8).
        point (np.ndarray): Internal tree nodes on the path, root to leaf; rows of the HS table.
    """

    __slots__ = ("word", "index", "count", "code", "point")

    def __init__(self, word: str, index: int, count: int):
        self.word = word
        self.index = index
        self.count = count
        self.code = np.zeros(0, dtype=np.uint8)
        self.point = np.zeros(0, dtype=np.int64)

    @property
    def code_length(self) -> int:
        return len(self.code)

    def __repr__(self) -> str:
        return f"VocabEntry({self.word!r}, index={self.index}, count={self.count})"


class Vocabulary:
    """Indexed vocabulary with Huffman tree codes.

    Entries keep the order given; build_vocab sorts them by descending count, which is
    what the two-pointer Huffman construction expects for an optimal tree.

    Attributes:
        entries (List[VocabEntry]): One entry per row.
        word2id (Dict[str, int]): Token to index.
        counts (np.ndarray): Counts as float64, shape (V,).
    """

    def __init__(self, words: Sequence[str], counts: Sequence[int], build_tree: bool = True):
        """Create a vocabulary from parallel word and count sequences.

        Args:
            words: Tokens, one per row.
            counts: Frequency of each token.
            build_tree: Assign Huffman codes/points. Defaults to True.

        Raises:
            ValueError: If lengths differ, a word repeats, or the vocabulary is empty.
        """
        if len(words) != len(counts):
            raise ValueError(f"{len(words)} words but {len(counts)} counts")
        if not words:
            raise ValueError("Empty vocabulary")
        self.entries: List[VocabEntry] = [
            VocabEntry(w, i, int(c)) for i, (w, c) in enumerate(zip(words, counts))
        ]
        self.word2id: Dict[str, int] = {e.word: e.index for e in self.entries}
        if len(self.word2id) != len(self.entries):
            raise ValueError("Duplicate words in vocabulary")
        self.counts = np.asarray(counts, dtype=np.float64)
        if build_tree:
            self.build_huffman_tree()

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, word: str) -> bool:
        return word in self.word2id

    def at(self, index: int) -> VocabEntry:
        return self.entries[index]

    def find(self, word: str) -> Optional[VocabEntry]:
        index = self.word2id.get(word)
        return None if index is None else self.entries[index]

    @property
    def id_to_word(self) -> List[str]:
        return [e.word for e in self.entries]

    @property
    def total(self) -> int:
        """Total word count (sum of all counts)."""
        return int(self.counts.sum())

    @property
    def start_index(self) -> int:
        """Row of the start symbol; pads fixed-size windows. Row 0 when there is none."""
        return self.word2id.get(START_SYMBOL, 0)

    def build_huffman_tree(self) -> None:
        """Assign code and point arrays to every entry (word2vec CreateBinaryTree).

        Leaves are 0..V-1, internal nodes V..2V-2 with the root at 2V-2. Points are stored as
        internal node id minus V, so the root is row V-2 of the HS table.
        """
        V = len(self.entries)
        if V < 2:
            for entry in self.entries:
                entry.code = np.zeros(0, dtype=np.uint8)
                entry.point = np.zeros(0, dtype=np.int64)
            return
        count = np.full(2 * V - 1, 1e15, dtype=np.float64)
        count[:V] = self.counts
        binary = np.zeros(2 * V - 1, dtype=np.uint8)
        parent = np.zeros(2 * V - 1, dtype=np.int64)
        pos1, pos2 = V - 1, V
        for a in range(V - 1):
            picked = []
            for _ in range(2):
                if pos1 >= 0 and count[pos1] < count[pos2]:
                    picked.append(pos1)
                    pos1 -= 1
                else:
                    picked.append(pos2)
                    pos2 += 1
            count[V + a] = count[picked[0]] + count[picked[1]]
            parent[picked[0]] = V + a
            parent[picked[1]] = V + a
            binary[picked[1]] = 1

        root = 2 * V - 2
        for a, entry in enumerate(self.entries):
            codes = []
            nodes = []
            b = a
            while b != root:
                codes.append(binary[b])
                nodes.append(b)
                b = parent[b]
            entry.code = np.array(codes[::-1], dtype=np.uint8)
            # nodes[0] is the leaf itself; the path starts at the root
            entry.point = np.array([root - V] + [n - V for n in nodes[:0:-1]], dtype=np.int64)

    def negative_table(self, size: int = NEG_TABLE_SIZE, power: float = NEG_TABLE_POWER) -> np.ndarray:
        """Flat table of indices, each filling a share of slots proportional to count^power.

        Args:
            size: Number of slots. Defaults to NEG_TABLE_SIZE.
            power: Exponent for counts; 0.75 is standard. Defaults to 0.75.

        Returns:
            int32 array of shape (size,).

        Raises:
            ValueError: If size is not positive or all counts are zero.
        """
        if size <= 0:
            raise ValueError("Negative table size must be > 0")
        weights = np.power(np.maximum(self.counts, 0.0), power)
        z = weights.sum()
        if z <= 0:
            raise ValueError("Invalid negative-sampling distribution: sum is zero.")
        cumulative = np.cumsum(weights) / z
        positions = np.arange(size, dtype=np.float64) / size
        table = np.searchsorted(cumulative, positions, side="right")
        return np.minimum(table, len(self.entries) - 1).astype(np.int32)


def build_vocab(
    token_lines: Iterable[Sequence[str]],
    min_count: int = 1,
    max_size: Optional[int] = None,
    start_symbol: bool = True,
) -> Vocabulary:
    """Count tokens over lines and build a Vocabulary sorted by descending count.

    Keeps tokens with count >= min_count, optionally capped at max_size by frequency. When
    start_symbol is True, "</s>" takes index 0 with a count equal to the number of lines
    (one end-of-line per line, as in word2vec).

    Args:
        token_lines: Iterable of token lists, one per line.
        min_count: Minimum count to include a token. Defaults to 1.
        max_size: Maximum number of (non start symbol) words. Defaults to None.
        start_symbol: Reserve index 0 for "</s>". Defaults to True.

    Returns:
        The Vocabulary, with Huffman codes assigned.

    Raises:
        ValueError: If no token survives the filters.
    """
    cnt: Counter = Counter()
    n_lines = 0
    for tokens in token_lines:
        cnt.update(tokens)
        n_lines += 1
    cnt.pop(START_SYMBOL, None)
    kept = [(w, c) for w, c in cnt.most_common(max_size) if c >= min_count]
    if not kept:
        raise ValueError("No tokens survive min_count")
    words = [w for w, _ in kept]
    counts = [c for _, c in kept]
    if start_symbol:
        words.insert(0, START_SYMBOL)
        counts.insert(0, max(n_lines, 1))
    return Vocabulary(words, counts)
