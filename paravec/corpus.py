import re
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from paravec.vocab import Vocabulary, build_vocab

# Corpus of vocabularized lines. Each line is one paragraph: its id is the row of its
# paragraph vector. No external tokenizer required.


def tokenize_simple(text: str) -> List[str]:
    """Lowercase and split on non-alphanumeric; keep only letter/digit sequences.

    Args:
        text: Raw input string.

    Returns:
        List of token strings.
    """
    return re.findall(r"[a-zA-Z0-9]+", text.lower())


def vocabularize(tokens: Sequence[str], vocab: Vocabulary) -> np.ndarray:
    """Map tokens to vocabulary indices, dropping out-of-vocabulary tokens.

    Args:
        tokens: Token strings.
        vocab: The vocabulary.

    Returns:
        One-dimensional int64 array of indices.
    """
    ids = [vocab.word2id[w] for w in tokens if w in vocab.word2id]
    return np.array(ids, dtype=np.int64)


class Line:
    """A vocabularized line.

    Attributes:
        word_ids (np.ndarray): Vocabulary indices, int64.
        line_id (int): Paragraph id (row in the paragraph table).
    """

    __slots__ = ("word_ids", "line_id")

    def __init__(self, word_ids: Union[Sequence[int], np.ndarray], line_id: int = 0):
        self.word_ids = np.asarray(word_ids, dtype=np.int64)
        self.line_id = int(line_id)

    def __len__(self) -> int:
        return len(self.word_ids)

    def __repr__(self) -> str:
        return f"Line(id={self.line_id}, len={len(self)})"


class Corpus:
    """Ordered collection of vocabularized lines.

    Attributes:
        lines (List[Line]): The lines in order.
        count (int): Total number of words over all lines.
        max_line_length (int): Length of the longest line.
    """

    def __init__(self, lines: Iterable[Line]):
        self.lines: List[Line] = list(lines)
        self.count = int(sum(len(line) for line in self.lines))
        self.max_line_length = max((len(line) for line in self.lines), default=0)

    def __len__(self) -> int:
        return len(self.lines)

    def __getitem__(self, index: int) -> Line:
        return self.lines[index]

    def __iter__(self) -> Iterator[Line]:
        return iter(self.lines)

    @property
    def paragraph_count(self) -> int:
        """Rows needed in a paragraph table to hold every line id."""
        return max((line.line_id for line in self.lines), default=-1) + 1


def _split_numbered(tokens: List[str], fallback: int) -> Tuple[int, List[str]]:
    """Take the leading integer id off a numbered line."""
    if tokens and tokens[0].lstrip("*_").isdigit():
        return int(tokens[0].lstrip("*_")), tokens[1:]
    return fallback, tokens


def build_corpus_from_lines(
    token_lines: Sequence[Sequence[str]],
    vocab: Optional[Vocabulary] = None,
    min_count: int = 1,
    max_vocab: Optional[int] = None,
    line_ids: Optional[Sequence[int]] = None,
) -> Tuple[Corpus, Vocabulary]:
    """Build a Corpus (and, unless given, a Vocabulary) from tokenized lines.

    Args:
        token_lines: One list of token strings per line.
        vocab: Existing vocabulary to map onto (e.g. for inference). Defaults to None (build one).
        min_count: Minimum token count for a new vocabulary. Defaults to 1.
        max_vocab: Maximum size of a new vocabulary. Defaults to None.
        line_ids: Paragraph id per line. Defaults to None (the line position).

    Returns:
        Tuple of (corpus, vocab).
    """
    if vocab is None:
        vocab = build_vocab(token_lines, min_count=min_count, max_size=max_vocab)
    if line_ids is None:
        line_ids = range(len(token_lines))
    lines = [Line(vocabularize(tokens, vocab), lid) for tokens, lid in zip(token_lines, line_ids)]
    return Corpus(lines), vocab


def build_corpus_from_text(
    text: str,
    vocab: Optional[Vocabulary] = None,
    min_count: int = 1,
    max_vocab: Optional[int] = None,
    numbered: bool = False,
) -> Tuple[Corpus, Vocabulary]:
    """Tokenize text line by line and build a Corpus.

    Args:
        text: Raw text; each non-empty line is one paragraph.
        vocab: Existing vocabulary. Defaults to None (build one).
        min_count: Minimum token count for a new vocabulary. Defaults to 1.
        max_vocab: Maximum size of a new vocabulary. Defaults to None.
        numbered: The first token of every line is its paragraph id. Defaults to False.

    Returns:
        Tuple of (corpus, vocab).

    Raises:
        ValueError: If text yields no tokens.
    """
    token_lines = []
    line_ids = []
    for raw in text.splitlines():
        tokens = tokenize_simple(raw)
        if not tokens:
            continue
        lid = len(token_lines)
        if numbered:
            lid, tokens = _split_numbered(raw.split(), lid)
            tokens = tokenize_simple(" ".join(tokens))
        token_lines.append(tokens)
        line_ids.append(lid)
    if not any(token_lines):
        raise ValueError("No tokens in text")
    return build_corpus_from_lines(
        token_lines, vocab=vocab, min_count=min_count, max_vocab=max_vocab, line_ids=line_ids
    )


def build_corpus_from_file(
    path: str,
    vocab: Optional[Vocabulary] = None,
    min_count: int = 1,
    max_vocab: Optional[int] = None,
    numbered: bool = False,
) -> Tuple[Corpus, Vocabulary]:
    """Build a Corpus from a text file with one paragraph per line.

    Args:
        path: Path to the text file.
        vocab: Existing vocabulary. Defaults to None (build one).
        min_count: Minimum token count for a new vocabulary. Defaults to 1.
        max_vocab: Maximum size of a new vocabulary. Defaults to None.
        numbered: The first token of every line is its paragraph id. Defaults to False.

    Returns:
        Tuple of (corpus, vocab).
    """
    with open(path, encoding="utf-8", errors="replace") as f:
        text = f.read()
    return build_corpus_from_text(
        text, vocab=vocab, min_count=min_count, max_vocab=max_vocab, numbered=numbered
    )
