import numpy as np
import pytest

from paravec.corpus import Corpus, Line, build_corpus_from_lines, build_corpus_from_text
from paravec.model import create_network
from paravec.options import ModelType, TrainOptions
from paravec.train import learning_rate, resolve_threads, split_lines, train
from paravec.vocab import Vocabulary

# Training loop tests: partitioning, LR schedule, end-to-end runs.

TEXT = """
the quick brown fox jumps over the lazy dog
the dog and the fox are animals
quick animals jump over lazy dogs
brown foxes and lazy dogs
the quick brown fox runs
the lazy dog sleeps
"""


def test_split_lines_even_and_remainder():
    assert split_lines(10, 3) == [(0, 3), (3, 6), (6, 10)]
    assert split_lines(4, 1) == [(0, 4)]
    parts = split_lines(17, 5)
    assert parts[0][0] == 0 and parts[-1][1] == 17
    for (_, end), (start, _) in zip(parts, parts[1:]):
        assert end == start
    with pytest.raises(ValueError):
        split_lines(5, 0)


def test_resolve_threads_capped_by_lines():
    assert resolve_threads(8, 3) == 3
    assert resolve_threads(2, 100) == 2
    assert resolve_threads(None, 1) == 1
    with pytest.raises(ValueError):
        resolve_threads(0, 10)


def test_learning_rate_monotonic_and_floored():
    start = 0.05
    rates = [learning_rate(start, 3, wca, 1000) for wca in range(0, 5000, 50)]
    assert rates[0] == start
    assert all(a >= b for a, b in zip(rates, rates[1:]))
    assert min(rates) >= 0.0001 * start
    assert learning_rate(start, 1, 10**9, 10) == pytest.approx(0.0001 * start)


def test_cbow_hs_only_window_rows_change():
    """2-d CBOW with HS, 6-word vocabulary, one line: rows outside the line stay put."""
    vocab = Vocabulary(list("abcdef"), [6, 5, 4, 3, 2, 1])
    corpus = Corpus([Line([0, 1, 2], 0)])
    opts = TrainOptions(
        model_type=ModelType.CBOW, window=1, sample=0, hs=True, negative=0,
        learn_rate=0.05, epochs=1, layer_size=2, seed=7,
    )
    net = create_network(opts, vocab)
    before = net.words.weights.copy()
    train(net, corpus, threads=1)
    after = net.words.weights
    np.testing.assert_array_equal(after[3:], before[3:])
    assert not np.array_equal(after[:3], before[:3])


@pytest.mark.parametrize("model", list(ModelType))
def test_train_all_models_multithreaded(model):
    corpus, vocab = build_corpus_from_text(TEXT)
    opts = TrainOptions(model_type=model, window=2, sample=0, negative=3, layer_size=8, epochs=2, seed=0)
    net = create_network(opts, vocab, paragraph_count=corpus.paragraph_count)
    words_before = net.words.weights.copy()
    history = train(net, corpus, threads=3)
    assert history
    assert history[-1]["progress"] > 0.9
    assert 0 < history[-1]["lr"] <= opts.learn_rate
    assert np.all(np.isfinite(net.words.weights))
    if model is not ModelType.PVDBOW:
        assert not np.array_equal(net.words.weights, words_before)
    if net.paragraphs is not None:
        assert np.all(np.isfinite(net.paragraphs.weights))


def test_train_respects_update_flags():
    corpus, vocab = build_corpus_from_text(TEXT)
    opts = TrainOptions(model_type="pvdm", window=2, sample=0, negative=2, layer_size=6, epochs=1, seed=1)
    net = create_network(opts, vocab, paragraph_count=corpus.paragraph_count)
    # frozen zero output rows would pass no gradient back at all
    net.hs.init_uniform(np.random.default_rng(2))
    net.neg.init_uniform(np.random.default_rng(3))
    words = net.words.weights.tobytes()
    hs = net.hs.weights.tobytes()
    pars = net.paragraphs.weights.copy()
    train(net, corpus, update_words=False, update_layer2=False, threads=2)
    assert net.words.weights.tobytes() == words
    assert net.hs.weights.tobytes() == hs
    assert not np.array_equal(net.paragraphs.weights, pars)


def test_train_paragraph_model_needs_paragraph_table():
    corpus, vocab = build_corpus_from_text(TEXT)
    net = create_network(TrainOptions(model_type="pvdbow", seed=0), vocab)
    with pytest.raises(ValueError):
        train(net, corpus)
    small = create_network(TrainOptions(model_type="pvdbow", seed=0), vocab, paragraph_count=2)
    with pytest.raises(ValueError):
        train(small, corpus)


def test_train_empty_corpus():
    vocab = Vocabulary(["a", "b"], [2, 1])
    net = create_network(TrainOptions(seed=0), vocab)
    assert train(net, Corpus([])) == []


def test_train_verbose_prints_progress(capsys):
    corpus, vocab = build_corpus_from_text(TEXT)
    net = create_network(TrainOptions(layer_size=4, epochs=1, seed=0), vocab)
    train(net, corpus, threads=1, verbose=True)
    out = capsys.readouterr().out
    assert "Alpha:" in out and "Progress:" in out


def test_learning_rate_recomputed_during_long_run():
    rng = np.random.default_rng(0)
    words = [f"w{i}" for i in range(20)]
    lines = [[str(w) for w in rng.choice(words, size=50)] for _ in range(400)]
    corpus, vocab = build_corpus_from_lines(lines)
    opts = TrainOptions(
        model_type="cbow", hs=False, negative=2, layer_size=4, window=2, sample=0,
        learn_rate=0.05, epochs=2, seed=0,
    )
    net = create_network(opts, vocab)
    history = train(net, corpus, threads=1)
    # 40,000 words give several mid-run recomputes plus the final report
    assert len(history) > 2
    rates = [h["lr"] for h in history]
    assert rates[0] < 0.05
    assert all(a >= b for a, b in zip(rates, rates[1:]))
    assert min(rates) >= 0.0001 * 0.05
    assert history[-1]["words"] == corpus.count * 2
