from typing import Optional, Sequence, Union

import numpy as np

from paravec.context import subsample_line
from paravec.corpus import Corpus, Line, tokenize_simple, vocabularize
from paravec.lookup import EmbeddingTable
from paravec.model import NeuralNet, get_update_rule
from paravec.train import learning_rate, resolve_threads, run_threads, split_lines, thread_rng

# Paragraph-vector inference: fit vectors for unseen lines with the trained word and
# objective tables frozen. Only a freshly allocated paragraph table learns.


def inference_mode(net: NeuralNet) -> None:
    """Freeze the word table and every second-layer table."""
    net.words.update = False
    for table in net.second_layers():
        table.update = False


def learn_mode(net: NeuralNet) -> None:
    net.words.update = True
    for table in net.second_layers():
        table.update = True


def _as_corpus(corpus_or_line: Union[Corpus, Line, Sequence[int], np.ndarray]) -> Corpus:
    if isinstance(corpus_or_line, Corpus):
        return corpus_or_line
    if isinstance(corpus_or_line, Line):
        return Corpus([corpus_or_line])
    return Corpus([Line(corpus_or_line, 0)])


def infer_paragraph_vectors(
    net: NeuralNet,
    corpus_or_line: Union[Corpus, Line, Sequence[int], np.ndarray],
    epochs: Optional[int] = None,
    threads: Optional[int] = None,
    verbose: bool = False,
    seed: Optional[int] = None,
) -> EmbeddingTable:
    """Infer one paragraph vector per line without touching the trained tables.

    Each line gets `epochs` passes of the model's own update rule against a new paragraph
    table; the learning rate decays per line from the network's start rate. The word and
    HS/NEG tables are frozen for the duration and set back to learnable afterwards, also
    when an error is raised.

    Args:
        net: Trained paragraph-vector network.
        corpus_or_line: Lines to infer; a bare Line or index sequence is one line.
        epochs: Passes per line. Defaults to None (net.options.epochs).
        threads: Worker threads. Defaults to None (core count, capped at the number of lines).
        verbose: Print progress. Defaults to False.
        seed: Seed for initialization and sampling. Defaults to None.

    Returns:
        EmbeddingTable with row i holding the vector of line i.

    Raises:
        ValueError: If the network is not a paragraph model.
        MemoryError: If the paragraph table cannot be allocated.
    """
    if not net.model_type.learns_paragraphs:
        raise ValueError(f"{net.model_type.value} does not learn paragraph vectors")
    rule = get_update_rule(net.model_type)
    corpus = _as_corpus(corpus_or_line)
    options = net.options
    if epochs is None:
        epochs = options.epochs

    paragraphs = EmbeddingTable(len(corpus), options.layer_size)
    paragraphs.init_uniform(np.random.default_rng(seed))
    if len(corpus) == 0:
        return paragraphs

    counts = net.vocab.counts
    total_words = net.vocab.total
    n_threads = resolve_threads(threads, len(corpus))
    done = [0]

    def worker(thread_id: int, start: int, end: int) -> None:
        rng = thread_rng(None if seed is None else seed + 1, thread_id)
        generator = net.context_generator()
        arena = generator.create_arena(corpus.max_line_length)
        scratch = net.create_scratch()

        for row in range(start, end):
            line = corpus[row]
            line_words = len(line)
            for epoch in range(epochs):
                lr = learning_rate(options.learn_rate, epochs, epoch * line_words, line_words)
                kept, _ = subsample_line(line.word_ids, counts, total_words, options.sample, rng)
                n = generator.generate(kept, row, arena, rng)
                for i in range(n):
                    rule(net, paragraphs, arena[i], lr, scratch, rng)
            done[0] += 1
            if verbose and done[0] % 1000 == 0:
                print(f"Progress: {done[0] / len(corpus) * 100:.2f}% ({done[0]}/{len(corpus)})")

    inference_mode(net)
    try:
        run_threads(worker, split_lines(len(corpus), n_threads))
    finally:
        learn_mode(net)
    if verbose:
        print(f"Inferred {len(corpus)} paragraph vectors")
    return paragraphs


def infer_text(
    net: NeuralNet,
    text: str,
    epochs: Optional[int] = None,
    seed: Optional[int] = None,
) -> np.ndarray:
    """Tokenize text, drop unknown words and infer its paragraph vector (1-D array)."""
    line = Line(vocabularize(tokenize_simple(text), net.vocab), 0)
    table = infer_paragraph_vectors(net, line, epochs=epochs, threads=1, seed=seed)
    return table.weights[0].copy()
