"""
Exceptions raised by famrate.
"""


class FamrateError(Exception):
    """Base class for famrate errors."""


class ZeroPosteriorError(FamrateError, RuntimeError):
    """
    A family's best posterior probability is exactly zero.

    The aggregate score needs every family, so a single zero aborts the
    whole scoring pass.

    Attributes
    ----------
    family_id : str
        Identifier of the offending family
    """

    def __init__(self, family_id: str):
        self.family_id = family_id
        super().__init__(
            f"Calculated posterior probability for family {family_id} = 0"
        )


class OutputFileError(FamrateError, OSError):
    """An output file could not be opened for writing."""

    def __init__(self, path, reason: str = ""):
        self.path = str(path)
        message = f"Cannot open file: {self.path}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)
