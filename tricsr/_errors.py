"""
_errors.py
==========
Exception types raised by tricsr.

Every error is fatal for the run that raised it: the kernels perform no local
recovery, and a run that raises never produces a triangle count.
"""

from typing import Optional


class TricsrError(Exception):
    """Base class for all tricsr errors."""


class MalformedStructure(TricsrError, ValueError):
    """
    The CSR structure violates an invariant the kernels rely on.

    Parameters
    ----------
    message : str
        Description of the violated condition.
    row : int, optional
        Offending row index, when known.
    column : int, optional
        Offending column index, when known.
    """

    def __init__(
        self, message: str, row: Optional[int] = None, column: Optional[int] = None
    ) -> None:
        self.row = row
        self.column = column
        location = []
        if row is not None:
            location.append(f"row={row}")
        if column is not None:
            location.append(f"column={column}")
        if location:
            message = f"{message} ({', '.join(location)})"
        super().__init__(message)


class ResourceExhaustion(TricsrError, RuntimeError):
    """Launch configuration limits or available memory would be exceeded."""


class EdgeListFormatError(TricsrError, ValueError):
    """
    An edge-list file could not be parsed.

    Parameters
    ----------
    message : str
        Description of the problem.
    path : str, optional
        File being parsed.
    lineno : int, optional
        1-based line number of the offending line.
    """

    def __init__(
        self, message: str, path: Optional[str] = None, lineno: Optional[int] = None
    ) -> None:
        self.path = path
        self.lineno = lineno
        if path is not None and lineno is not None:
            message = f"{path}:{lineno}: {message}"
        elif path is not None:
            message = f"{path}: {message}"
        super().__init__(message)
