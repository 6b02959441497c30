import numpy as np
import pytest

from paravec.corpus import build_corpus_from_lines, build_corpus_from_text, tokenize_simple, vocabularize
from paravec.vocab import START_SYMBOL, Vocabulary, build_vocab

# Unit tests: vocabulary order, Huffman codes, negative table, corpus builders.


def test_build_vocab_order_and_start_symbol():
    lines = [["a", "b", "a"], ["c", "a", "b"]]
    vocab = build_vocab(lines)
    assert vocab.id_to_word == [START_SYMBOL, "a", "b", "c"]
    assert vocab.at(0).count == 2  # one per line
    assert vocab.find("a").count == 3
    assert vocab.find("zzz") is None
    assert vocab.start_index == 0
    assert vocab.total == 2 + 3 + 2 + 1


def test_build_vocab_min_count_and_max_size():
    lines = [["a", "a", "a", "b", "b", "c"]]
    vocab = build_vocab(lines, min_count=2, start_symbol=False)
    assert vocab.id_to_word == ["a", "b"]
    vocab = build_vocab(lines, max_size=1, start_symbol=False)
    assert vocab.id_to_word == ["a"]
    with pytest.raises(ValueError):
        build_vocab(lines, min_count=10)


def test_vocabulary_rejects_bad_input():
    with pytest.raises(ValueError):
        Vocabulary(["a", "a"], [1, 1])
    with pytest.raises(ValueError):
        Vocabulary(["a"], [1, 2])
    with pytest.raises(ValueError):
        Vocabulary([], [])


def test_huffman_codes_are_prefix_free():
    vocab = Vocabulary(list("abcdef"), [30, 20, 10, 5, 3, 1])
    codes = ["".join(str(b) for b in e.code.tolist()) for e in vocab.entries]
    for i, ci in enumerate(codes):
        assert ci
        for j, cj in enumerate(codes):
            if i != j:
                assert not cj.startswith(ci)


def test_huffman_points_and_lengths():
    vocab = Vocabulary(list("abcdef"), [30, 20, 10, 5, 3, 1])
    V = len(vocab)
    lengths = [e.code_length for e in vocab.entries]
    # more frequent words never get longer codes
    assert lengths == sorted(lengths)
    for e in vocab.entries:
        assert len(e.point) == len(e.code)
        assert e.point[0] == V - 2
        assert np.all((e.point >= 0) & (e.point <= V - 2))


def test_single_word_vocab_has_no_codes():
    vocab = Vocabulary(["a"], [3])
    assert vocab.at(0).code_length == 0


def test_negative_table_follows_power_law():
    vocab = Vocabulary(["a", "b"], [16, 1])
    table = vocab.negative_table(size=10000, power=0.75)
    assert table.dtype == np.int32
    share = np.mean(table == 0)
    expected = 16 ** 0.75 / (16 ** 0.75 + 1)
    assert share == pytest.approx(expected, abs=1e-3)


def test_tokenize_and_vocabularize_drop_unknown():
    vocab = Vocabulary(["the", "dog"], [2, 1])
    tokens = tokenize_simple("The dog, the CAT!")
    assert tokens == ["the", "dog", "the", "cat"]
    np.testing.assert_array_equal(vocabularize(tokens, vocab), [0, 1, 0])


def test_build_corpus_from_text():
    corpus, vocab = build_corpus_from_text("a b c\n\nb c\n")
    assert len(corpus) == 2
    assert corpus.count == 5
    assert corpus.max_line_length == 3
    assert corpus.paragraph_count == 2
    assert [line.line_id for line in corpus] == [0, 1]
    assert START_SYMBOL in vocab


def test_build_corpus_numbered_lines():
    corpus, _ = build_corpus_from_text("*_7 a b\n3 b c\n", numbered=True)
    assert [line.line_id for line in corpus] == [7, 3]
    assert corpus.paragraph_count == 8
    assert len(corpus[0]) == 2


def test_build_corpus_with_existing_vocab():
    vocab = Vocabulary(["x", "y"], [2, 1])
    corpus, same = build_corpus_from_lines([["x", "z", "y"]], vocab=vocab)
    assert same is vocab
    np.testing.assert_array_equal(corpus[0].word_ids, [0, 1])


def test_build_corpus_empty_text():
    with pytest.raises(ValueError):
        build_corpus_from_text("\n ,,, \n")
