import enum
from dataclasses import dataclass
from typing import Optional, Union

# Model types and training options shared by the network, the context generator and the trainer.


class ModelType(enum.Enum):
    """The five supported language models (closed set)."""

    CBOW = "cbow"
    SKIPGRAM = "skipgram"
    PVDBOW = "pvdbow"
    PVDM = "pvdm"
    PVDM_CONCAT = "pvdm_concat"

    @property
    def learns_paragraphs(self) -> bool:
        return self in (ModelType.PVDBOW, ModelType.PVDM, ModelType.PVDM_CONCAT)

    @property
    def concat(self) -> bool:
        return self is ModelType.PVDM_CONCAT

    @classmethod
    def parse(cls, value: Union[str, "ModelType"]) -> "ModelType":
        """Resolve a model name (case-insensitive, '-' or '_') to a ModelType.

        Args:
            value: A ModelType or its name, e.g. "cbow", "PVDM-concat".

        Returns:
            The matching ModelType.

        Raises:
            ValueError: If value names no supported model.
        """
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("-", "_")
        for model in cls:
            if model.value == key:
                return model
        raise ValueError(f"Invalid model type: {value!r}")


@dataclass
class TrainOptions:
    """Training options carried by a NeuralNet.

    Attributes:
        model_type: Which model to train.
        window: Half-window size (words on each side of the target).
        sample: Subsampling rate; 0 disables subsampling.
        negative: Number of negative samples; 0 disables negative sampling.
        hs: Use hierarchical softmax.
        learn_rate: Starting learning rate.
        epochs: Passes over the corpus.
        layer_size: Embedding dimension.
        random_windows: Draw a reduced window in [1, window] per position (word2vec style).
        dbow_words: PVDBOW also trains word vectors skip-gram style.
        seed: Seed for weight initialization and sampling. None draws fresh entropy.
    """

    model_type: ModelType = ModelType.CBOW
    window: int = 5
    sample: float = 1e-3
    negative: int = 0
    hs: bool = True
    learn_rate: float = 0.05
    epochs: int = 5
    layer_size: int = 100
    random_windows: bool = False
    dbow_words: bool = False
    seed: Optional[int] = None

    def __post_init__(self):
        self.model_type = ModelType.parse(self.model_type)

    def validate(self) -> None:
        """Raise ValueError for options no network can be built from."""
        if self.window < 1:
            raise ValueError(f"window must be >= 1, got {self.window}")
        if self.layer_size < 1:
            raise ValueError(f"layer_size must be >= 1, got {self.layer_size}")
        if self.negative < 0:
            raise ValueError(f"negative must be >= 0, got {self.negative}")
        if self.epochs < 1:
            raise ValueError(f"epochs must be >= 1, got {self.epochs}")
        if self.learn_rate <= 0:
            raise ValueError(f"learn_rate must be > 0, got {self.learn_rate}")
        if not self.hs and self.negative == 0:
            raise ValueError("At least one of hierarchical softmax or negative sampling is required")

    @property
    def layer_size2(self) -> int:
        """Width of the second-layer (HS/NEG) rows: the first-layer output size."""
        if self.model_type.concat:
            return 2 * self.window * self.layer_size + self.layer_size
        return self.layer_size
