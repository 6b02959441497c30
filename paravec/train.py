import os
import threading
import time
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from paravec.context import subsample_line
from paravec.corpus import Corpus
from paravec.model import NeuralNet, get_update_rule

# Training loop: Hogwild SGD over a fixed pool of threads, each owning a contiguous slice of
# the corpus. Threads share the weight tables and an approximate word counter with no locks;
# the learning rate decays linearly with that counter toward a floor. Pure NumPy.

LR_UPDATE_WORDS = 10000
MIN_RATE_RATIO = 0.0001


def split_lines(total_lines: int, num_threads: int) -> List[Tuple[int, int]]:
    """Split [0, total_lines) into num_threads contiguous ranges; the last takes the remainder.

    Args:
        total_lines: Number of corpus lines.
        num_threads: Number of partitions (>= 1).

    Returns:
        List of (start, end) pairs.

    Raises:
        ValueError: If num_threads < 1.
    """
    if num_threads < 1:
        raise ValueError(f"num_threads must be >= 1, got {num_threads}")
    step = total_lines // num_threads
    parts = []
    for i in range(num_threads):
        start = i * step
        end = total_lines if i == num_threads - 1 else start + step
        parts.append((start, end))
    return parts


def learning_rate(start_rate: float, epochs: int, word_count_actual: int, train_words: int) -> float:
    """Linear decay start * (1 - seen / (epochs*train_words + 1)), floored at 0.0001 * start."""
    rate = start_rate * (1 - word_count_actual / (epochs * train_words + 1))
    return max(rate, start_rate * MIN_RATE_RATIO)


def resolve_threads(threads: Optional[int], total_lines: int) -> int:
    """Thread count: the given one or the core count, capped at the number of lines."""
    if threads is None:
        threads = os.cpu_count() or 1
    if threads < 1:
        raise ValueError(f"threads must be >= 1, got {threads}")
    return max(1, min(threads, total_lines))


def run_threads(worker: Callable[..., None], partitions: Sequence[Tuple[int, int]]) -> None:
    """Run worker(thread_id, start, end) on one thread per partition and join them all.

    The first exception raised by any worker is re-raised here after every thread has
    finished.
    """
    errors: List[BaseException] = []

    def target(thread_id, start, end):
        try:
            worker(thread_id, start, end)
        except BaseException as e:  # re-raised in the calling thread below
            errors.append(e)

    workers = [
        threading.Thread(target=target, args=(i, start, end))
        for i, (start, end) in enumerate(partitions)
    ]
    for thread in workers:
        thread.daemon = True
        thread.start()
    for thread in workers:
        thread.join()
    if errors:
        raise errors[0]


def thread_rng(seed: Optional[int], thread_id: int) -> np.random.Generator:
    if seed is None:
        return np.random.default_rng()
    return np.random.default_rng([seed, thread_id])


class _SharedProgress:
    """State shared by all workers of one run. Updated without synchronization."""

    def __init__(self, start_rate: float, epochs: int, train_words: int, threads: int, verbose: bool):
        self.start_rate = start_rate
        self.epochs = epochs
        self.train_words = train_words
        self.threads = threads
        self.verbose = verbose
        self.word_count_actual = 0
        self.start_time = time.time()
        self.history: List[dict] = []

    @property
    def progress(self) -> float:
        return self.word_count_actual / (self.epochs * self.train_words + 1)

    def report(self, lr: float, epoch: int) -> None:
        self.history.append({"words": self.word_count_actual, "lr": lr, "progress": self.progress})
        if not self.verbose:
            return
        elapsed = max(time.time() - self.start_time, 1e-9)
        wps = self.word_count_actual / elapsed / self.threads
        print(
            f"Alpha: {lr:.6f}  Progress: {self.progress * 100:.2f}%  "
            f"Epoch: {epoch + 1}/{self.epochs}  Words/thread/sec: {wps / 1000:.2f}k  "
            f"Threads: {self.threads}"
        )


def train(
    net: NeuralNet,
    corpus: Corpus,
    update_words: bool = True,
    update_paragraphs: bool = True,
    update_layer2: bool = True,
    threads: Optional[int] = None,
    epochs: Optional[int] = None,
    verbose: bool = False,
    seed: Optional[int] = None,
) -> list:
    """Train the network on a corpus; blocks until every worker thread has finished.

    Each worker walks its own line range in order, subsampling and windowing every line and
    running the model's update rule on each context. Every ~10,000 words it folds its word
    count into the shared counter and recomputes its learning rate. Workers run their epochs
    independently (no barrier between epochs). The update flags given here stay set on the
    network afterwards.

    Args:
        net: Network to train (modified in place).
        corpus: Training corpus; line_id of each line is its paragraph row.
        update_words: Learn the word table. Defaults to True.
        update_paragraphs: Learn the paragraph table. Defaults to True.
        update_layer2: Learn the HS/NEG tables. Defaults to True.
        threads: Worker threads. Defaults to None (core count, capped at the number of lines).
        epochs: Passes over the corpus. Defaults to None (net.options.epochs).
        verbose: Print progress lines. Defaults to False.
        seed: Seed for subsampling, windows and negative draws. Defaults to None
            (net.options.seed).

    Returns:
        List of dicts with keys "words", "lr", "progress", one per progress report.

    Raises:
        ValueError: On an invalid model type, or a paragraph model whose paragraph table is
            missing or smaller than the corpus needs.
    """
    options = net.options
    rule = get_update_rule(net.model_type)
    if net.model_type.learns_paragraphs:
        if net.paragraphs is None:
            raise ValueError(f"{net.model_type.value} needs a paragraph table to train")
        if net.paragraphs.rows < corpus.paragraph_count:
            raise ValueError(
                f"Paragraph table has {net.paragraphs.rows} rows, "
                f"corpus needs {corpus.paragraph_count}"
            )
    if epochs is None:
        epochs = options.epochs
    if seed is None:
        seed = options.seed
    net.set_update(update_words, update_paragraphs, update_layer2)
    if len(corpus) == 0 or corpus.count == 0:
        return []

    n_threads = resolve_threads(threads, len(corpus))
    partitions = split_lines(len(corpus), n_threads)
    state = _SharedProgress(options.learn_rate, epochs, corpus.count, n_threads, verbose)
    if verbose:
        print(
            f"Training {net.model_type.value}: {epochs} epochs, {corpus.count} words, "
            f"{len(corpus)} lines, {n_threads} threads"
        )

    counts = net.vocab.counts
    total_words = net.vocab.total

    def worker(thread_id: int, start: int, end: int) -> None:
        rng = thread_rng(seed, thread_id)
        generator = net.context_generator()
        arena = generator.create_arena(corpus.max_line_length)
        scratch = net.create_scratch()
        paragraphs = net.paragraphs
        lr = options.learn_rate
        word_count = 0
        last_word_count = 0

        for epoch in range(epochs):
            for line_no in range(start, end):
                if word_count - last_word_count > LR_UPDATE_WORDS:
                    state.word_count_actual += word_count - last_word_count
                    last_word_count = word_count
                    lr = learning_rate(
                        options.learn_rate, epochs, state.word_count_actual, corpus.count
                    )
                    state.report(lr, epoch)

                line = corpus[line_no]
                kept, dropped = subsample_line(line.word_ids, counts, total_words, options.sample, rng)
                word_count += len(kept) + dropped
                n = generator.generate(kept, line.line_id, arena, rng)
                for i in range(n):
                    rule(net, paragraphs, arena[i], lr, scratch, rng)

            state.word_count_actual += word_count - last_word_count
            last_word_count = word_count

    run_threads(worker, partitions)

    final_lr = learning_rate(options.learn_rate, epochs, state.word_count_actual, corpus.count)
    state.report(final_lr, epochs - 1)
    return state.history
