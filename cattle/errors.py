"""Error taxonomy for cattle.

Every error raised by the library derives from :class:`CattleError`. All of
them are fatal to the command being executed; the CLI turns them into a
message and a non-zero exit code.
"""


class CattleError(Exception):
    """Base class for all cattle errors."""


class ValidationError(CattleError):
    """The input or network file is malformed or incomplete."""


class DuplicateIdentifierError(CattleError):
    """Two expanded nodes share a friendly name or a hostname."""

    def __init__(self, field, values):
        self.field = field
        self.values = sorted(values)
        super().__init__(f"Duplicated {field}: {', '.join(self.values)}")


class AccountNotFoundError(CattleError):
    """A required account is not stored and cannot be generated."""


class EpochMismatchError(CattleError):
    """A stored voting key file does not cover the requested epoch range."""

    def __init__(self, field, expected, actual):
        self.field = field
        self.expected = expected
        self.actual = actual
        super().__init__(f"Unexpected {field} on stored file. Expected {expected} but got {actual}")


class AlreadyGeneratedError(CattleError):
    """The nemesis block has already been generated."""


class NoCandidateNodeError(CattleError):
    """No harvesting node is available to build the nemesis block."""


class UnresolvedConfigValueError(CattleError):
    """A required network value (seed, mosaics, divisibility, lifetime) is missing."""

    def __init__(self, name, message=None):
        self.name = name
        super().__init__(message or f"{name} could not be resolved")


class KeyStoreError(CattleError):
    """The key store cannot be read or written."""


class KeyStoreNotFoundError(KeyStoreError):
    """The key store file is required but does not exist."""


class KeyStoreConflictError(KeyStoreError):
    """The key store file changed on disk after it was loaded."""


class ToolkitError(CattleError):
    """The external node configuration toolkit failed."""
