from typing import Callable, Dict, Optional

import numpy as np

from paravec.context import Context, ContextGenerator
from paravec.lookup import EmbeddingTable
from paravec.objectives import NegativeSamplingTable, hierarchical_softmax, negative_sampling
from paravec.options import ModelType, TrainOptions
from paravec.vocab import START_SYMBOL, Vocabulary

# The network (word table, paragraph table, HS/NEG tables) and the five per-example update
# rules. Every rule has the same shape: gather the first-layer vector, run HS and/or NEG
# (gradients add into one accumulator), scatter the accumulator back into the input rows.
# Each table applies updates only when its own `update` flag is set.


class Scratch:
    """Per-worker buffers: first-layer output and gradient accumulator (float32)."""

    __slots__ = ("layer1_out", "grad_acc")

    def __init__(self, size: int):
        self.layer1_out = np.zeros(size, dtype=np.float32)
        self.grad_acc = np.zeros(size, dtype=np.float32)


class NeuralNet:
    """Shallow embedding network.

    Attributes:
        options (TrainOptions): Model type and hyperparameters.
        vocab (Vocabulary): Vocabulary (read-only).
        words (EmbeddingTable): Word vectors, (V, dim).
        paragraphs (Optional[EmbeddingTable]): Paragraph vectors, (P, dim), paragraph models only.
        hs (Optional[EmbeddingTable]): Hierarchical softmax table, (V, layer_size2).
        neg (Optional[EmbeddingTable]): Negative sampling table, (V, layer_size2).
        neg_table (Optional[NegativeSamplingTable]): Noise distribution when neg is present.
    """

    def __init__(
        self,
        options: TrainOptions,
        vocab: Vocabulary,
        words: EmbeddingTable,
        paragraphs: Optional[EmbeddingTable] = None,
        hs: Optional[EmbeddingTable] = None,
        neg: Optional[EmbeddingTable] = None,
        neg_table: Optional[NegativeSamplingTable] = None,
    ):
        if hs is None and neg is None:
            raise ValueError("A network needs a hierarchical softmax or a negative sampling layer")
        if neg is not None and neg_table is None:
            raise ValueError("Negative sampling layer without a negative sampling table")
        self.options = options
        self.vocab = vocab
        self.words = words
        self.paragraphs = paragraphs
        self.hs = hs
        self.neg = neg
        self.neg_table = neg_table

    @property
    def model_type(self) -> ModelType:
        return self.options.model_type

    @property
    def layer_size2(self) -> int:
        layer2 = self.hs if self.hs is not None else self.neg
        return layer2.cols

    def second_layers(self):
        return [t for t in (self.hs, self.neg) if t is not None]

    def set_update(self, words: bool = True, paragraphs: bool = True, layer2: bool = True) -> None:
        """Set which tables learn; HS and NEG always share one flag."""
        self.words.update = words
        if self.paragraphs is not None:
            self.paragraphs.update = paragraphs
        for table in self.second_layers():
            table.update = layer2

    def create_scratch(self) -> Scratch:
        return Scratch(self.layer_size2)

    def context_generator(self) -> ContextGenerator:
        return ContextGenerator.from_options(self.options, self.vocab)

    def __repr__(self) -> str:
        parts = [f"words={self.words.weights.shape}"]
        if self.paragraphs is not None:
            parts.append(f"paragraphs={self.paragraphs.weights.shape}")
        if self.hs is not None:
            parts.append(f"hs={self.hs.weights.shape}")
        if self.neg is not None:
            parts.append(f"neg={self.neg.weights.shape}")
        return f"NeuralNet({self.model_type.value}, {', '.join(parts)})"


def create_network(
    options: TrainOptions,
    vocab: Vocabulary,
    paragraph_count: int = 0,
    rng: Optional[np.random.Generator] = None,
    verbose: bool = False,
) -> NeuralNet:
    """Allocate and initialize a network for the given options.

    The word table and the paragraph table (paragraph models with paragraph_count > 0) are
    drawn from U[-0.5/dim, 0.5/dim); HS and NEG tables start at zero.

    Args:
        options: Training options (validated here).
        vocab: Vocabulary; its size sets the word and objective table rows.
        paragraph_count: Number of paragraph vectors to learn. Defaults to 0.
        rng: Random generator for initialization. Defaults to one seeded from options.seed.
        verbose: Print the layer shapes. Defaults to False.

    Returns:
        The NeuralNet.

    Raises:
        ValueError: If the options are invalid, or PVDM-concat has no start symbol to pad with.
        MemoryError: If a table cannot be allocated.
    """
    options.validate()
    if options.model_type.concat and START_SYMBOL not in vocab:
        raise ValueError(f"{options.model_type.value} needs {START_SYMBOL!r} in the vocabulary as padding")
    if rng is None:
        rng = np.random.default_rng(options.seed)
    V = len(vocab)
    dim = options.layer_size

    words = EmbeddingTable(V, dim)
    words.init_uniform(rng)

    paragraphs = None
    if options.model_type.learns_paragraphs and paragraph_count > 0:
        paragraphs = EmbeddingTable(paragraph_count, dim)
        paragraphs.init_uniform(rng)

    hs = EmbeddingTable(V, options.layer_size2) if options.hs else None
    neg = None
    neg_table = None
    if options.negative > 0:
        neg = EmbeddingTable(V, options.layer_size2)
        neg_table = NegativeSamplingTable(vocab)

    net = NeuralNet(options, vocab, words, paragraphs, hs, neg, neg_table)
    if verbose:
        print(net)
    return net


def _objectives(
    net: NeuralNet,
    h: np.ndarray,
    context: Context,
    learn_rate: float,
    grad_acc: np.ndarray,
    rng: np.random.Generator,
) -> None:
    if net.hs is not None:
        hierarchical_softmax(net.hs, h, context.target, learn_rate, grad_acc)
    if net.neg is not None:
        negative_sampling(
            net.neg,
            net.neg_table,
            net.options.negative,
            h,
            context.target.index,
            learn_rate,
            grad_acc,
            rng,
        )


def cbow_update(
    net: NeuralNet,
    paragraphs: Optional[EmbeddingTable],
    context: Context,
    learn_rate: float,
    scratch: Scratch,
    rng: np.random.Generator,
) -> None:
    """CBOW: average the window rows, predict the target, add the gradient to every row."""
    h, grad_acc = scratch.layer1_out, scratch.grad_acc
    window = context.indices
    grad_acc.fill(0)
    net.words.forward_avg(window, h)
    _objectives(net, h, context, learn_rate, grad_acc, rng)
    net.words.backprop_many(window, grad_acc)


def skipgram_update(
    net: NeuralNet,
    paragraphs: Optional[EmbeddingTable],
    context: Context,
    learn_rate: float,
    scratch: Scratch,
    rng: np.random.Generator,
) -> None:
    """Skipgram: each window word on its own predicts the target."""
    h, grad_acc = scratch.layer1_out, scratch.grad_acc
    for index in context.indices.tolist():
        grad_acc.fill(0)
        net.words.forward_one(index, h)
        _objectives(net, h, context, learn_rate, grad_acc, rng)
        net.words.backprop_one(index, grad_acc)


def pvdbow_update(
    net: NeuralNet,
    paragraphs: Optional[EmbeddingTable],
    context: Context,
    learn_rate: float,
    scratch: Scratch,
    rng: np.random.Generator,
) -> None:
    """PVDBOW: skip-gram over the window, where paragraph slots read the paragraph table."""
    h, grad_acc = scratch.layer1_out, scratch.grad_acc
    flags = context.is_paragraph
    for k, index in enumerate(context.indices.tolist()):
        table = paragraphs if flags[k] else net.words
        grad_acc.fill(0)
        table.forward_one(index, h)
        _objectives(net, h, context, learn_rate, grad_acc, rng)
        table.backprop_one(index, grad_acc)


def pvdm_update(
    net: NeuralNet,
    paragraphs: Optional[EmbeddingTable],
    context: Context,
    learn_rate: float,
    scratch: Scratch,
    rng: np.random.Generator,
) -> None:
    """PVDM: like CBOW, with the paragraph vector averaged in as one more slot."""
    h, grad_acc = scratch.layer1_out, scratch.grad_acc
    word_rows = context.word_indices
    par_rows = context.paragraph_indices
    scale = 1.0 / context.size
    grad_acc.fill(0)
    h.fill(0)
    net.words.forward_add(word_rows, h, scale)
    paragraphs.forward_add(par_rows, h, scale)
    _objectives(net, h, context, learn_rate, grad_acc, rng)
    net.words.backprop_many(word_rows, grad_acc)
    paragraphs.backprop_many(par_rows, grad_acc)


def pvdm_concat_update(
    net: NeuralNet,
    paragraphs: Optional[EmbeddingTable],
    context: Context,
    learn_rate: float,
    scratch: Scratch,
    rng: np.random.Generator,
) -> None:
    """PVDM-concat: paragraph vector in slot 0, word vectors after it in window order."""
    h, grad_acc = scratch.layer1_out, scratch.grad_acc
    word_rows = context.word_indices
    par_rows = context.paragraph_indices
    offset = len(par_rows)
    grad_acc.fill(0)
    paragraphs.forward_concat(par_rows, h, 0)
    net.words.forward_concat(word_rows, h, offset)
    _objectives(net, h, context, learn_rate, grad_acc, rng)
    paragraphs.backprop_concat(par_rows, grad_acc, 0)
    net.words.backprop_concat(word_rows, grad_acc, offset)


UpdateRule = Callable[
    [NeuralNet, Optional[EmbeddingTable], Context, float, Scratch, np.random.Generator], None
]

UPDATE_RULES: Dict[ModelType, UpdateRule] = {
    ModelType.CBOW: cbow_update,
    ModelType.SKIPGRAM: skipgram_update,
    ModelType.PVDBOW: pvdbow_update,
    ModelType.PVDM: pvdm_update,
    ModelType.PVDM_CONCAT: pvdm_concat_update,
}


def get_update_rule(model_type: ModelType) -> UpdateRule:
    """Return the update rule for a model type.

    Raises:
        ValueError: For anything outside the five supported ModelType members.
    """
    try:
        return UPDATE_RULES[model_type]
    except (KeyError, TypeError):
        raise ValueError(f"Invalid model type: {model_type!r}") from None
