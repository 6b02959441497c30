from typing import List, Optional, Tuple, Union

import numpy as np

from paravec.lookup import EmbeddingTable
from paravec.vocab import Vocabulary

# word2vec-compatible vector files. Text: "<token> <c0> ... <c_{d-1}>\n" per row.
# Binary: "<token> " then d little-endian float32 values, then "\n". Both optionally start
# with a "<rows> <cols>\n" header. Paragraph rows are named <pv_prefix><row>.

FORMATS = ("text", "binary")


def row_names(rows: int, vocab: Optional[Vocabulary] = None, pv_prefix: str = "*_") -> List[str]:
    """Token per row: vocabulary words, or pv_prefix + row index when vocab is None.

    Raises:
        ValueError: If vocab is given and its size differs from rows.
    """
    if vocab is None:
        return [f"{pv_prefix}{i}" for i in range(rows)]
    if len(vocab) != rows:
        raise ValueError(f"Vocabulary has {len(vocab)} words, table has {rows} rows")
    return vocab.id_to_word


def export_vectors(
    table: Union[EmbeddingTable, np.ndarray],
    path: str,
    fmt: str = "text",
    vocab: Optional[Vocabulary] = None,
    pv_prefix: str = "*_",
    header: bool = False,
) -> None:
    """Write every row of a table to a word2vec vector file.

    Args:
        table: EmbeddingTable or (rows, dim) array.
        path: Output file path (overwritten).
        fmt: "text" or "binary". Defaults to "text".
        vocab: Names word rows; None writes paragraph rows as pv_prefix + index. Defaults to None.
        pv_prefix: Prefix of paragraph row tokens. Defaults to "*_".
        header: Write a "<rows> <cols>" first line. Defaults to False.

    Raises:
        ValueError: On an unknown format or a vocabulary/table size mismatch.
    """
    if fmt not in FORMATS:
        raise ValueError(f"Unknown vector format {fmt!r}, expected one of {FORMATS}")
    weights = table.weights if isinstance(table, EmbeddingTable) else np.asarray(table)
    rows, cols = weights.shape
    names = row_names(rows, vocab, pv_prefix)

    if fmt == "text":
        with open(path, "w", encoding="utf-8") as f:
            if header:
                f.write(f"{rows} {cols}\n")
            for name, row in zip(names, weights):
                f.write(name + " " + " ".join(f"{x:.6f}" for x in row) + "\n")
    else:
        data = weights.astype("<f4")
        with open(path, "wb") as f:
            if header:
                f.write(f"{rows} {cols}\n".encode("utf-8"))
            for name, row in zip(names, data):
                f.write(name.encode("utf-8") + b" " + row.tobytes() + b"\n")


def _parse_header(line: str) -> Optional[Tuple[int, int]]:
    parts = line.split()
    if len(parts) == 2 and parts[0].isdigit() and parts[1].isdigit():
        return int(parts[0]), int(parts[1])
    return None


def _load_text(path: str) -> Tuple[List[str], np.ndarray]:
    names = []
    rows = []
    with open(path, encoding="utf-8") as f:
        for n, line in enumerate(f):
            if n == 0 and _parse_header(line) is not None:
                continue
            parts = line.rstrip("\n").split(" ")
            if not parts[0]:
                continue
            names.append(parts[0])
            rows.append([float(x) for x in parts[1:] if x])
    return names, np.array(rows, dtype=np.float32)


def _load_binary(path: str, dim: Optional[int]) -> Tuple[List[str], np.ndarray]:
    with open(path, "rb") as f:
        data = f.read()
    pos = 0
    end = data.find(b"\n")
    shape = _parse_header(data[:end].decode("utf-8", errors="replace")) if end >= 0 else None
    if shape is not None:
        if dim is not None and dim != shape[1]:
            raise ValueError(f"File header says {shape[1]} columns, dim is {dim}")
        dim = shape[1]
        pos = end + 1
    elif dim is None:
        raise ValueError("Binary vector file without a header needs dim")
    width = 4 * dim
    names = []
    rows = []
    while pos < len(data):
        space = data.index(b" ", pos)
        names.append(data[pos:space].decode("utf-8"))
        start = space + 1
        rows.append(np.frombuffer(data[start:start + width], dtype="<f4"))
        pos = start + width
        if data[pos:pos + 1] == b"\n":
            pos += 1
    if not rows:
        return names, np.zeros((0, dim), dtype=np.float32)
    return names, np.vstack(rows).astype(np.float32)


def load_vectors(path: str, fmt: str = "text", dim: Optional[int] = None) -> Tuple[List[str], np.ndarray]:
    """Read a vector file written by export_vectors (or word2vec).

    Args:
        path: Input file path.
        fmt: "text" or "binary". Defaults to "text".
        dim: Vector width of a binary file; a header, when present, is always read and must
            agree. Defaults to None (take it from the header).

    Returns:
        Tuple of (row tokens, (rows, dim) float32 array).

    Raises:
        ValueError: On an unknown format, a headerless binary file without dim, or a dim
            that disagrees with the header.
    """
    if fmt not in FORMATS:
        raise ValueError(f"Unknown vector format {fmt!r}, expected one of {FORMATS}")
    if fmt == "text":
        return _load_text(path)
    return _load_binary(path, dim)
