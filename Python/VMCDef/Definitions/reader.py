"""
Fixed-format definition file reader.

Definition files share a common shape::

    ======================
    NTransfer      2          <- header (line index 1)
    ======================
    ========i_j_s_tijs=====   <- preamble ends after 5 lines
    ======================
       0     0     1     0         1.0    0.0
       1     0     0     0         1.0    0.0

The reader loads the whole file at once (the handle is closed before the
caller sees any data), exposes header lines by index and hands out the body
as a whitespace token stream that is cut into fixed-width rows.

--------------------------------------------------
File        : VMCDef/Definitions/reader.py
Description : Header parsing and row-block extraction for definition files.
--------------------------------------------------
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import numpy as np

from VMCDef.Definitions.errors import DefinitionError, DefFileAccessError, DefFormatError, RowCountError

PREAMBLE_LINES = 5

class DefFileReader:
    """
    In-memory view of one definition file.

    Parameters
    ----------
    path : str
        File to read.
    keyword : str
        Manifest keyword, used in error messages.
    """

    def __init__(self, path: str, keyword: str):
        self.path       = str(path)
        self.keyword    = str(keyword)
        try:
            with open(self.path, "r") as handle:
                self.lines: List[str] = handle.read().splitlines()
        except OSError as exc:
            raise DefFileAccessError(f"{DefinitionError.CANNOT_OPEN}: {exc.strerror}", keyword=self.keyword, path=self.path) from exc

    # ------------------
    #! headers
    # ------------------

    def _error(self, cls, message: str, row: Optional[int] = None):
        return cls(message, keyword=self.keyword, path=self.path, row=row)

    def line_tokens(self, index: int) -> List[str]:
        if index >= len(self.lines):
            raise self._error(DefFormatError, f"file ends before header line {index + 1}")
        return self.lines[index].split()

    def header_ints(self, index: int, n: int = 1) -> Tuple[int, ...]:
        """
        Parse the header line ``label v1 ... vn`` at ``index`` (0-based).

        Raises
        ------
        DefFormatError
            When the line does not consist of a label followed by exactly
            ``n`` integers.
        """
        tokens = self.line_tokens(index)
        if len(tokens) != n + 1:
            raise self._error(DefFormatError, f"header line {index + 1} must read 'label' followed by {n} integer(s), got {tokens}")
        try:
            return tuple(int(t) for t in tokens[1:])
        except ValueError:
            raise self._error(DefFormatError, f"header line {index + 1} holds a non-integer value: {tokens[1:]}") from None

    def header_int(self, index: int) -> int:
        return self.header_ints(index, 1)[0]

    def header_word(self, index: int) -> str:
        """Second token of a ``label value`` line."""
        tokens = self.line_tokens(index)
        if len(tokens) < 2:
            raise self._error(DefFormatError, f"header line {index + 1} must read 'label value', got {tokens}")
        return tokens[1]

    # ------------------
    #! body
    # ------------------

    def body(self, skip: int = PREAMBLE_LINES) -> "TokenStream":
        """Token stream over everything after the first ``skip`` lines."""
        tokens = " ".join(self.lines[skip:]).split()
        return TokenStream(tokens, keyword=self.keyword, path=self.path)

class TokenStream:
    """
    Sequential reader of fixed-width rows.

    The stream mirrors a formatted scan: rows are cut from consecutive tokens
    regardless of line breaks.
    """

    def __init__(self, tokens: Sequence[str], keyword: str = "", path: str = ""):
        self._tokens    = list(tokens)
        self._pos       = 0
        self.keyword    = keyword
        self.path       = path

    @property
    def remaining(self) -> int:
        return len(self._tokens) - self._pos

    def exhausted(self) -> bool:
        return self.remaining == 0

    def _take(self, width: int, limit: Optional[int]) -> np.ndarray:
        available = self.remaining // width
        nrows = available if limit is None else min(limit, available)
        if (limit is None or nrows < limit) and self.remaining % width:
            raise DefFormatError(DefinitionError.TRUNCATED_ROW.format(found=self.remaining % width, width=width),
                                keyword=self.keyword, path=self.path, row=nrows)
        chunk       = self._tokens[self._pos:self._pos + nrows * width]
        self._pos  += nrows * width
        return np.asarray(chunk, dtype=object).reshape(nrows, width)

    def rows(self, width: int, limit: Optional[int] = None, float_columns: Sequence[int] = ()) -> Tuple[np.ndarray, np.ndarray]:
        """
        Read up to ``limit`` rows (all remaining rows when ``None``).

        Parameters
        ----------
        width : int
            Tokens per row.
        limit : int, optional
            Row cap; rows beyond the cap stay in the stream.
        float_columns : Sequence[int]
            Columns parsed as floats; all others are integers.

        Returns
        -------
        (ints, floats) : Tuple[np.ndarray, np.ndarray]
            ``ints`` of shape ``(rows, width - len(float_columns))`` holding
            the integer columns in order and ``floats`` of shape
            ``(rows, len(float_columns))``.
        """
        raw         = self._take(width, limit)
        fcols       = list(float_columns)
        icols       = [c for c in range(width) if c not in fcols]
        try:
            ints    = np.array([[int(v) for v in row] for row in raw[:, icols]], dtype=np.int64).reshape(raw.shape[0], len(icols))
            floats  = np.array([[float(v) for v in row] for row in raw[:, fcols]], dtype=np.float64).reshape(raw.shape[0], len(fcols))
        except ValueError as exc:
            raise DefFormatError(f"malformed row value: {exc}", keyword=self.keyword, path=self.path) from None
        return ints, floats

    def int_rows(self, width: int, limit: Optional[int] = None) -> np.ndarray:
        return self.rows(width, limit)[0]

    def exact_rows(self, width: int, expected: int, float_columns: Sequence[int] = ()) -> Tuple[np.ndarray, np.ndarray]:
        """
        Read every remaining row and require exactly ``expected`` of them.

        Raises
        ------
        RowCountError
            When the file holds fewer or more rows than declared.
        """
        ints, floats = self.rows(width, None, float_columns)
        if ints.shape[0] != expected:
            raise RowCountError(DefinitionError.ROW_COUNT_MISMATCH.format(found=ints.shape[0], expected=expected),
                                keyword=self.keyword, path=self.path)
        return ints, floats

    def capped_rows(self, width: int, cap: int, float_columns: Sequence[int] = ()) -> Tuple[np.ndarray, np.ndarray]:
        """
        Read at most ``cap`` rows and require exactly ``cap``.

        Rows beyond the cap are left for the next block of the file.
        """
        ints, floats = self.rows(width, cap, float_columns)
        if ints.shape[0] != cap:
            raise RowCountError(DefinitionError.ROW_COUNT_MISMATCH.format(found=ints.shape[0], expected=cap),
                                keyword=self.keyword, path=self.path)
        return ints, floats

# --------------------------------------------------------------------------
#! EOF
# --------------------------------------------------------------------------
