import hashlib

import numpy as np
import pytest

from paravec.corpus import Line, build_corpus_from_text
from paravec.model import create_network
from paravec.options import ModelType, TrainOptions
from paravec.pv import inference_mode, infer_paragraph_vectors, infer_text, learn_mode
from paravec.train import train

# Paragraph-vector inference: frozen shared tables, fresh paragraph table, restored flags.

TEXT = """
the cat sat on the mat
the dog sat on the log
a cat and a dog played
the mat and the log were wet
"""


def digest(table):
    return hashlib.sha256(table.weights.tobytes()).hexdigest()


def trained_net(model, **kwargs):
    corpus, vocab = build_corpus_from_text(TEXT)
    opts = TrainOptions(
        model_type=model, window=2, sample=0, negative=3, hs=True, layer_size=8, epochs=3, seed=0,
        **kwargs,
    )
    net = create_network(opts, vocab, paragraph_count=corpus.paragraph_count)
    train(net, corpus, threads=2)
    return net, vocab


def test_inference_and_learn_mode_flags():
    net, _ = trained_net(ModelType.PVDM)
    inference_mode(net)
    assert not net.words.update and not net.hs.update and not net.neg.update
    learn_mode(net)
    assert net.words.update and net.hs.update and net.neg.update


@pytest.mark.parametrize("kwargs", [{}, {"dbow_words": True}])
def test_pvdbow_inference_leaves_shared_tables_identical(kwargs):
    net, vocab = trained_net(ModelType.PVDBOW, **kwargs)
    held_out, _ = build_corpus_from_text("the cat sat on the log", vocab=vocab)
    before = [digest(net.words), digest(net.hs), digest(net.neg), digest(net.paragraphs)]
    table = infer_paragraph_vectors(net, held_out[0], epochs=5, seed=1)
    after = [digest(net.words), digest(net.hs), digest(net.neg), digest(net.paragraphs)]
    assert before == after
    assert table.weights.shape == (1, 8)
    assert np.all(np.isfinite(table.weights))
    assert net.words.update and net.hs.update and net.neg.update


@pytest.mark.parametrize("model", [ModelType.PVDM, ModelType.PVDM_CONCAT])
def test_pvdm_inference_leaves_shared_tables_identical(model):
    net, vocab = trained_net(model)
    held_out, _ = build_corpus_from_text("a dog sat on the mat\nthe cat played", vocab=vocab)
    before = [digest(net.words), digest(net.hs), digest(net.neg)]
    table = infer_paragraph_vectors(net, held_out, epochs=4, threads=2, seed=2)
    assert [digest(net.words), digest(net.hs), digest(net.neg)] == before
    assert table.rows == len(held_out)


def test_inference_moves_paragraph_vector():
    net, vocab = trained_net(ModelType.PVDBOW)
    ids = [vocab.find(w).index for w in "the dog sat on the mat".split()]
    seeded = infer_paragraph_vectors(net, ids, epochs=1, seed=3)
    assert seeded.cols == net.options.layer_size
    more = infer_paragraph_vectors(net, Line(ids), epochs=10, seed=3)
    assert not np.allclose(seeded.weights, more.weights)


def test_infer_text_returns_vector():
    net, _ = trained_net(ModelType.PVDM)
    vec = infer_text(net, "The cat sat on the log!", epochs=3, seed=0)
    assert vec.shape == (8,)
    assert np.all(np.isfinite(vec))


def test_word_model_cannot_infer_paragraphs():
    corpus, vocab = build_corpus_from_text(TEXT)
    net = create_network(TrainOptions(model_type="cbow", seed=0), vocab)
    with pytest.raises(ValueError):
        infer_paragraph_vectors(net, corpus)
    assert net.words.update
