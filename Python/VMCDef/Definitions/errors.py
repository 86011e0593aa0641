"""
Error taxonomy of the definition reader.

Every failure raised while reading the manifest or a definition file derives
from :class:`DefinitionError`. The error carries the manifest keyword and the
path of the offending file so that the final message points the user at the
file to fix. Nothing is recovered: the first error aborts ingestion on the
root and, through the distribution layer, on every worker.

--------------------------------------------------
File        : VMCDef/Definitions/errors.py
Description : Exception hierarchy for manifest and definition-file parsing.
--------------------------------------------------
"""

from typing import Optional

class DefinitionError(Exception):
    """
    Base error for the definition reader.

    Parameters
    ----------
    message : str
        Human readable description of the failure.
    keyword : str, optional
        Manifest keyword of the file being processed.
    path : str, optional
        Path of the file being processed.
    row : int, optional
        Zero-based data row where the failure was detected.
    """
    NEED_DEF_FILE               = "Need to make a def file for {keyword}"
    UNKNOWN_KEYWORD             = "Wrong keyword '{keyword}' in the manifest"
    DUPLICATE_KEYWORD           = "Same keyword '{keyword}' exists more than once"
    KEYWORD_WITHOUT_PATH        = "keyword and filename must be set as a pair"
    CANNOT_OPEN                 = "Cannot open file"
    INCORRECT_MODPARA_KEY       = "keyword \" {key} \" is incorrect"
    ROW_COUNT_MISMATCH          = "number of rows ({found}) differs from the declared count ({expected})"
    TRUNCATED_ROW               = "truncated row: {found} trailing token(s) for a row of width {width}"
    SITE_OUT_OF_RANGE           = "site index out of range [0, {nsite})"
    SPIN_OUT_OF_RANGE           = "spin index must be 0 or 1"
    INDEX_OUT_OF_RANGE          = "{what} index out of range [0, {bound})"
    DIAGONAL_JASTROW            = "[Condition] i != j required"
    SZ_NOT_CONSERVED            = "Sz is not conserved"
    ORBITAL_ORDER               = "[Condition] i < j required for orbital rows"
    MULTIPLE_ORBITAL_DEF        = "Multiple definition of Orbital files"
    OPT_FLAG_INCOMPLETE         = "OptFlag is incomplete"
    BACKFLOW_NOT_SUPPORTED      = "Back Flow is not supported"
    BACKFLOW_RANGE_MISSING      = "NBackFlowIdx > 0 requires a BFRange file with Nz >= 1"

    def __init__(self,
                message : str,
                keyword : Optional[str] = None,
                path    : Optional[str] = None,
                row     : Optional[int] = None):
        self.message    = message
        self.keyword    = keyword
        self.path       = path
        self.row        = row
        super().__init__(self._format())

    def _format(self) -> str:
        where = []
        if self.keyword:
            where.append(f"keyword={self.keyword}")
        if self.path:
            where.append(f"file={self.path}")
        if self.row is not None:
            where.append(f"row={self.row}")
        return f"{self.message} ({', '.join(where)})" if where else self.message

    def __reduce__(self):
        # keeps the error picklable for the MPI broadcast
        return (self.__class__, (self.message, self.keyword, self.path, self.row))

# --------------------------------------------------------------------------
#! Manifest and file access
# --------------------------------------------------------------------------

class ManifestError(DefinitionError):
    """Unknown, duplicated or incomplete manifest entries, or missing required files."""

class DefFileAccessError(DefinitionError):
    """A listed definition file cannot be opened."""

# --------------------------------------------------------------------------
#! Format errors
# --------------------------------------------------------------------------

class DefFormatError(DefinitionError):
    """A header or data row does not match the expected token pattern."""

class RowCountError(DefFormatError):
    """The number of data rows differs from the count declared in the header."""

# --------------------------------------------------------------------------
#! Semantic errors
# --------------------------------------------------------------------------

class SiteIndexError(DefinitionError):
    """A site index outside ``[0, Nsite)`` or a forbidden site combination."""

class SzConservationError(DefinitionError):
    """A row that breaks the required Sz conservation."""

class OrbitalOrderError(DefinitionError):
    """An orbital row whose spin-extended indices are not ordered."""

class ConstraintError(DefinitionError):
    """A row or count that violates a structural constraint of the model."""

class MultipleDefinitionError(DefinitionError):
    """Mutually exclusive definition files were given together."""

class OptFlagError(DefinitionError):
    """The free-parameter vector is not completely described."""

# --------------------------------------------------------------------------
#! Capability and distribution
# --------------------------------------------------------------------------

class FeatureNotSupportedError(DefinitionError):
    """The manifest requests a feature disabled in this run."""

class IngestionAborted(DefinitionError):
    """
    Raised on every process after the root failed to ingest the definitions.
    The original root error is kept in ``cause``.
    """

    def __init__(self, message, keyword=None, path=None, row=None, cause: Optional[DefinitionError] = None):
        super().__init__(message, keyword, path, row)
        self.cause = cause

    @classmethod
    def from_error(cls, error: BaseException) -> "IngestionAborted":
        if isinstance(error, DefinitionError):
            return cls(error.message, error.keyword, error.path, error.row, cause=error)
        return cls(f"{type(error).__name__}: {error}", cause=None)

# --------------------------------------------------------------------------
#! EOF
# --------------------------------------------------------------------------
