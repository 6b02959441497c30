from typing import List, Optional, Tuple

import numpy as np

from paravec.vocab import START_SYMBOL, Vocabulary

# Evaluation: k-NN neighbours, word analogies (a - b + c ≈ ?) on a word2vec questions file,
# and paraphrase retrieval over paragraph vectors.


def l2_normalize(X: np.ndarray, axis: int = -1) -> np.ndarray:
    """L2-normalize array along the given axis (zero vectors get divisor 1).

    Args:
        X: Input array.
        axis: Axis along which to normalize. Defaults to -1.

    Returns:
        Normalized array, same shape as X.
    """
    norm = np.linalg.norm(X, axis=axis, keepdims=True)
    norm = np.where(norm > 0, norm, 1.0)
    return X / norm


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine similarity between two vectors (flattened).

    Args:
        a: First vector.
        b: Second vector.

    Returns:
        Scalar in [-1, 1] (plus small epsilon in denominator).
    """
    a = np.asarray(a, dtype=np.float64).ravel()
    b = np.asarray(b, dtype=np.float64).ravel()
    return float(np.dot(a, b) / (np.linalg.norm(a) * np.linalg.norm(b) + 1e-10))


def nearest(
    embeddings: np.ndarray,
    query: np.ndarray,
    k: int = 5,
    exclude: Tuple[int, ...] = (),
) -> List[Tuple[int, float]]:
    """k rows most cosine-similar to a query vector.

    Args:
        embeddings: (N, D) matrix.
        query: (D,) vector.
        k: Number of neighbours. Defaults to 5.
        exclude: Row indices never returned. Defaults to ().

    Returns:
        List of (row, similarity), most similar first.
    """
    E = l2_normalize(np.asarray(embeddings, dtype=np.float64), axis=1)
    q = l2_normalize(np.asarray(query, dtype=np.float64).ravel())
    sims = np.dot(E, q)
    for idx in exclude:
        sims[idx] = -np.inf
    order = np.argsort(-sims, kind="stable")[: max(0, min(k, len(sims) - len(set(exclude))))]
    return [(int(j), float(sims[j])) for j in order]


def print_nearest(
    embeddings: np.ndarray,
    vocab: Vocabulary,
    k: int = 5,
    query_words: Optional[List[str]] = None,
) -> None:
    """Print k nearest neighbours (cosine) for given or default query words.

    Args:
        embeddings: (V, D) embedding matrix.
        vocab: Vocabulary naming the rows.
        k: Number of neighbours to show. Defaults to 5.
        query_words: Words to query; if None, use the 3 most frequent words. Defaults to None.
    """
    words = vocab.id_to_word
    if query_words is None:
        query_words = [w for w in words if w != START_SYMBOL][:3]
    for w in query_words:
        entry = vocab.find(w)
        if entry is None:
            continue
        nn = nearest(embeddings, embeddings[entry.index], k=k, exclude=(entry.index,))
        nn_str = ", ".join(f"{words[j]}({sim:.3f})" for j, sim in nn)
        print(f"  '{w}' -> {nn_str}")


def analogy(
    embeddings: np.ndarray,
    vocab: Vocabulary,
    a: str,
    b: str,
    c: str,
    k: int = 1,
) -> Optional[List[str]]:
    """Solve "a is to b as c is to ?" via b - a + c; return k nearest (excluding a, b, c).

    Args:
        embeddings: (V, D) embedding matrix.
        vocab: Vocabulary naming the rows.
        a: First word of analogy.
        b: Second word.
        c: Third word.
        k: Number of nearest neighbours to return. Defaults to 1.

    Returns:
        List of k nearest word strings, or None if any of a, b, c not in vocab.
    """
    ids = []
    for w in (a, b, c):
        entry = vocab.find(w)
        if entry is None:
            return None
        ids.append(entry.index)
    ia, ib, ic = ids
    E = l2_normalize(np.asarray(embeddings, dtype=np.float64), axis=1)
    vec = E[ib] - E[ia] + E[ic]
    words = vocab.id_to_word
    return [words[j] for j, _ in nearest(E, vec, k=k, exclude=(ia, ib, ic))]


def read_analogy_questions(
    path: str,
    vocab: Vocabulary,
    lower: bool = False,
) -> List[Tuple[int, int, int, int]]:
    """Read a word2vec questions-words file: "a b c expected" per line.

    Section headers (": name") and questions with an out-of-vocabulary word are skipped.

    Args:
        path: Questions file.
        vocab: Vocabulary to resolve words.
        lower: Lowercase the words before lookup. Defaults to False.

    Returns:
        List of (a, b, c, expected) vocabulary indices.
    """
    questions = []
    with open(path, encoding="utf-8") as f:
        for line in f:
            if line.startswith(":"):
                continue
            words = line.split()
            if len(words) != 4:
                continue
            if lower:
                words = [w.lower() for w in words]
            entries = [vocab.find(w) for w in words]
            if any(e is None for e in entries):
                continue
            questions.append(tuple(e.index for e in entries))
    return questions


def eval_on_questions(
    path: str,
    vocab: Vocabulary,
    weights: np.ndarray,
    limit: int = 0,
    lower: bool = False,
    verbose: bool = False,
) -> float:
    """Analogy accuracy on a questions file.

    Args:
        path: Questions file.
        vocab: Vocabulary naming the rows of weights.
        weights: (V, D) word vectors.
        limit: Only search (and only ask about) the first `limit` (most frequent) words;
            0 uses the whole vocabulary. Defaults to 0.
        lower: Lowercase the question words. Defaults to False.
        verbose: Print the totals. Defaults to False.

    Returns:
        Fraction of answered questions whose nearest word is the expected one (0 if none).
    """
    E = l2_normalize(np.asarray(weights, dtype=np.float64), axis=1)
    if limit > 0:
        E = E[:limit]
    questions = [q for q in read_analogy_questions(path, vocab, lower) if max(q) < len(E)]
    if not questions:
        if verbose:
            print("Analogy accuracy: no questions in vocabulary")
        return 0.0
    correct = 0
    for a, b, c, expected in questions:
        vec = E[b] - E[a] + E[c]
        best = nearest(E, vec, k=1, exclude=(a, b, c))
        if best and best[0][0] == expected:
            correct += 1
    accuracy = correct / len(questions)
    if verbose:
        print(f"Analogy accuracy: {correct}/{len(questions)} = {100.0 * accuracy:.1f}%")
    return accuracy


def eval_on_paraphrases(vectors: np.ndarray, verbose: bool = False) -> float:
    """Paraphrase retrieval accuracy: rows 2k and 2k+1 are a pair.

    A row counts as correct when its most similar other row is its partner. A trailing
    unpaired row is ignored.

    Args:
        vectors: (N, D) paragraph vectors.
        verbose: Print the totals. Defaults to False.

    Returns:
        Fraction of rows whose nearest neighbour is the partner (0 if fewer than 2 rows).
    """
    n = (len(vectors) // 2) * 2
    if n == 0:
        return 0.0
    E = l2_normalize(np.asarray(vectors[:n], dtype=np.float64), axis=1)
    sims = E @ E.T
    np.fill_diagonal(sims, -np.inf)
    best = np.argmax(sims, axis=1)
    partners = np.arange(n) ^ 1
    correct = int(np.sum(best == partners))
    accuracy = correct / n
    if verbose:
        print(f"Paraphrase accuracy: {correct}/{n} = {100.0 * accuracy:.1f}%")
    return accuracy
