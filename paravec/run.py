import argparse

from paravec.corpus import build_corpus_from_file, build_corpus_from_text
from paravec.eval import eval_on_paraphrases, eval_on_questions, print_nearest
from paravec.export import export_vectors
from paravec.model import create_network
from paravec.options import ModelType, TrainOptions
from paravec.pv import infer_paragraph_vectors
from paravec.train import train

# Entry point: train word or paragraph vectors on a demo corpus, a string or a file.
# Usage: python -m paravec.run [--model pvdbow] [--file path]

DEMO_TEXT = """
the quick brown fox jumps over the lazy dog
the dog and the fox are animals
quick animals jump over lazy dogs
brown foxes and lazy dogs
the quick brown fox runs
the lazy dog sleeps
"""


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Train word and paragraph vectors")
    ap.add_argument(
        "--model",
        type=str,
        default="cbow",
        choices=[m.value for m in ModelType],
        help="Language model to train",
    )
    ap.add_argument("--text", type=str, default=None, help="Train on this string (one paragraph per line)")
    ap.add_argument("--file", type=str, default=None, help="Train on file (one paragraph per line)")
    ap.add_argument("--numbered", action="store_true", help="First token of each line is its id")
    ap.add_argument("--dim", type=int, default=100)
    ap.add_argument("--window", type=int, default=5)
    ap.add_argument("--sample", type=float, default=1e-3, help="Subsampling rate, 0 disables")
    ap.add_argument("--negative", type=int, default=0, help="Negative samples, 0 disables")
    ap.add_argument("--hs", dest="hs", action="store_true", default=True)
    ap.add_argument("--no-hs", dest="hs", action="store_false", help="Disable hierarchical softmax")
    ap.add_argument("--lr", type=float, default=None, help="Defaults to 0.05 (CBOW/PV) or 0.025")
    ap.add_argument(
        "--epochs",
        type=int,
        default=5,
        help="For large corpora (e.g. text8) use 1-2 for a quicker run",
    )
    ap.add_argument("--threads", type=int, default=None, help="Defaults to the core count")
    ap.add_argument("--min-count", type=int, default=1)
    ap.add_argument("--seed", type=int, default=42)
    ap.add_argument("--random-windows", action="store_true", help="Reduced windows, word2vec style")
    ap.add_argument("--dbow-words", action="store_true", help="PVDBOW also learns word vectors")
    ap.add_argument("--output", type=str, default=None, help="Write word vectors here")
    ap.add_argument("--paragraph-output", type=str, default=None, help="Write paragraph vectors here")
    ap.add_argument("--binary", action="store_true", help="Binary instead of text vector files")
    ap.add_argument("--questions", type=str, default=None, help="word2vec analogy questions file")
    ap.add_argument(
        "--paraphrases",
        type=str,
        default=None,
        help="Paraphrase file (lines 2k and 2k+1 are pairs), inferred with the trained model",
    )
    ap.add_argument("--infer-epochs", type=int, default=None, help="Passes per inferred line")
    ap.add_argument(
        "--paraphrase-output", type=str, default=None, help="Write the inferred paraphrase vectors here"
    )
    ap.add_argument("--par-prefix", type=str, default="*_", help="Token prefix of paragraph rows")
    ap.add_argument("--quiet", action="store_true")
    return ap


def default_learn_rate(model_type: ModelType) -> float:
    return 0.025 if model_type in (ModelType.SKIPGRAM, ModelType.PVDBOW) else 0.05


def main(argv=None):
    """Train a model; print neighbours, optional evaluations, and export vectors."""
    args = build_parser().parse_args(argv)
    verbose = not args.quiet

    if args.file:
        corpus, vocab = build_corpus_from_file(
            args.file, min_count=args.min_count, numbered=args.numbered
        )
    else:
        text = args.text or DEMO_TEXT
        corpus, vocab = build_corpus_from_text(
            text, min_count=args.min_count, numbered=args.numbered
        )
    print(f"Vocab size {len(vocab)}, corpus lines {len(corpus)}, words {corpus.count}")

    model_type = ModelType.parse(args.model)
    options = TrainOptions(
        model_type=model_type,
        window=args.window,
        sample=args.sample,
        negative=args.negative,
        hs=args.hs,
        learn_rate=args.lr if args.lr is not None else default_learn_rate(model_type),
        epochs=args.epochs,
        layer_size=args.dim,
        random_windows=args.random_windows,
        dbow_words=args.dbow_words,
        seed=args.seed,
    )
    net = create_network(options, vocab, paragraph_count=corpus.paragraph_count, verbose=verbose)
    train(net, corpus, threads=args.threads, verbose=verbose)

    print_nearest(net.words.weights, vocab, k=5)
    if args.questions:
        eval_on_questions(args.questions, vocab, net.words.weights, verbose=True)
    if args.paraphrases:
        test, _ = build_corpus_from_file(args.paraphrases, vocab=vocab, numbered=args.numbered)
        vectors = infer_paragraph_vectors(
            net, test, epochs=args.infer_epochs, threads=args.threads, verbose=verbose, seed=args.seed
        )
        eval_on_paraphrases(vectors.weights, verbose=True)

    fmt = "binary" if args.binary else "text"
    if args.paraphrases and args.paraphrase_output:
        export_vectors(vectors, args.paraphrase_output, fmt=fmt, pv_prefix=args.par_prefix, header=True)
        print(f"Inferred paragraph vectors written to {args.paraphrase_output}")
    if args.output:
        export_vectors(net.words, args.output, fmt=fmt, vocab=vocab, header=True)
        print(f"Word vectors written to {args.output}")
    if args.paragraph_output:
        if net.paragraphs is None:
            print("No paragraph vectors to write for this model")
        else:
            export_vectors(
                net.paragraphs, args.paragraph_output, fmt=fmt, pv_prefix=args.par_prefix, header=True
            )
            print(f"Paragraph vectors written to {args.paragraph_output}")
    return net


if __name__ == "__main__":
    main()
