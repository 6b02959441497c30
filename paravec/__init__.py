from paravec.corpus import Corpus, Line, build_corpus_from_file, build_corpus_from_lines, build_corpus_from_text
from paravec.export import export_vectors, load_vectors
from paravec.lookup import EmbeddingTable
from paravec.model import NeuralNet, create_network, get_update_rule
from paravec.options import ModelType, TrainOptions
from paravec.pv import infer_paragraph_vectors, infer_text
from paravec.train import train
from paravec.vocab import Vocabulary, build_vocab

# Word vectors (CBOW, Skipgram) and paragraph vectors (PVDBOW, PVDM, PVDM-concat) in pure NumPy,
# trained with hierarchical softmax and/or negative sampling on a lock-free thread pool.

__all__ = [
    "Corpus",
    "EmbeddingTable",
    "Line",
    "ModelType",
    "NeuralNet",
    "TrainOptions",
    "Vocabulary",
    "build_corpus_from_file",
    "build_corpus_from_lines",
    "build_corpus_from_text",
    "build_vocab",
    "create_network",
    "export_vectors",
    "get_update_rule",
    "infer_paragraph_vectors",
    "infer_text",
    "load_vectors",
    "train",
]
