import numpy as np
import pytest

from paravec.lookup import EmbeddingTable

# Unit tests: gather modes against single-row gathers, frozen scatter, init bounds.


def make_table(rows=6, cols=4, seed=0):
    table = EmbeddingTable(rows, cols)
    table.init_uniform(np.random.default_rng(seed))
    return table


def test_init_uniform_bounds():
    table = make_table(rows=50, cols=8)
    assert table.weights.dtype == np.float32
    assert np.all(np.abs(table.weights) <= 0.5 / 8)
    assert np.any(table.weights != 0)


def test_new_table_is_zero():
    table = EmbeddingTable(3, 5)
    assert table.weights.shape == (3, 5)
    assert np.all(table.weights == 0)
    assert table.update is True
    assert table.learn_rate is None


def test_invalid_shape():
    with pytest.raises(ValueError):
        EmbeddingTable(3, 0)
    with pytest.raises(ValueError):
        EmbeddingTable(-1, 2)


def test_forward_avg_is_mean_of_single_rows():
    table = make_table()
    indices = [0, 3, 5, 3]
    out = np.zeros(table.cols, dtype=np.float32)
    table.forward_avg(indices, out)
    singles = []
    for i in indices:
        row = np.zeros(table.cols, dtype=np.float32)
        singles.append(table.forward_one(i, row).copy())
    np.testing.assert_allclose(out, np.mean(singles, axis=0), rtol=1e-6, atol=1e-7)


def test_forward_concat_is_ordered_concatenation():
    table = make_table()
    indices = [4, 1, 2]
    out = np.zeros(table.cols * len(indices), dtype=np.float32)
    table.forward_concat(indices, out)
    expected = np.concatenate([table.weights[i] for i in indices])
    np.testing.assert_array_equal(out, expected)


def test_forward_concat_offset_leaves_earlier_slots():
    table = make_table()
    out = np.full(table.cols * 3, 7.0, dtype=np.float32)
    table.forward_concat([2, 5], out, offset=1)
    np.testing.assert_array_equal(out[: table.cols], 7.0)
    np.testing.assert_array_equal(out[table.cols:], np.concatenate([table.weights[2], table.weights[5]]))


def test_forward_add_mixes_tables():
    words = make_table(seed=1)
    pars = make_table(rows=2, seed=2)
    out = np.zeros(words.cols, dtype=np.float32)
    words.forward_add([0, 1], out, 1 / 3)
    pars.forward_add([1], out, 1 / 3)
    expected = (words.weights[0] + words.weights[1] + pars.weights[1]) / 3
    np.testing.assert_allclose(out, expected, rtol=1e-5, atol=1e-7)


def test_forward_point_is_dot():
    table = make_table()
    v = np.arange(table.cols, dtype=np.float32)
    assert table.forward_point(v, 2) == pytest.approx(float(np.dot(table.weights[2], v)), rel=1e-6)


def test_backprop_many_adds_full_gradient_per_occurrence():
    table = EmbeddingTable(4, 2)
    grad = np.array([1.0, -2.0], dtype=np.float32)
    table.backprop_many([1, 3, 1], grad)
    np.testing.assert_array_equal(table.weights[1], [2.0, -4.0])
    np.testing.assert_array_equal(table.weights[3], [1.0, -2.0])
    np.testing.assert_array_equal(table.weights[0], [0.0, 0.0])


def test_backprop_concat_splits_gradient():
    table = EmbeddingTable(4, 2)
    grad = np.arange(6, dtype=np.float32)
    table.backprop_concat([3, 0], grad, offset=1)
    np.testing.assert_array_equal(table.weights[3], [2.0, 3.0])
    np.testing.assert_array_equal(table.weights[0], [4.0, 5.0])


def test_frozen_scatter_is_bit_identical():
    table = make_table()
    before = table.weights.copy()
    table.update = False
    grad = np.ones(table.cols, dtype=np.float32)
    table.backprop_one(1, grad)
    table.backprop_many([0, 2, 2], grad)
    table.backprop_concat([3, 4], np.ones(2 * table.cols, dtype=np.float32))
    grad_acc = np.zeros(table.cols, dtype=np.float32)
    table.backprop_acc(grad, 5, 0.5, grad_acc)
    assert table.weights.tobytes() == before.tobytes()
    # the input gradient is still accumulated
    np.testing.assert_allclose(grad_acc, 0.5 * before[5])


def test_backprop_acc_uses_row_before_update():
    table = EmbeddingTable.from_array(np.array([[1.0, 2.0]], dtype=np.float32))
    vector = np.array([3.0, 4.0], dtype=np.float32)
    grad_acc = np.zeros(2, dtype=np.float32)
    table.backprop_acc(vector, 0, 0.5, grad_acc)
    np.testing.assert_allclose(grad_acc, [0.5, 1.0])
    np.testing.assert_allclose(table.weights[0], [2.5, 4.0])


def test_rate_override():
    table = EmbeddingTable(1, 1)
    assert table.rate(0.1) == 0.1
    table.learn_rate = 0.01
    assert table.rate(0.1) == 0.01
