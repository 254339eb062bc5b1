"""Exceptions raised by the alex core."""


class SecretsError(Exception):
    """Base exception for alex errors."""
    pass


class ValidationError(SecretsError):
    """Input rejected before any I/O."""
    pass


class InvalidNameError(ValidationError):
    """Secret name is not a valid environment variable name."""
    pass


class EmptyValueError(ValidationError):
    """Secret value is empty."""
    pass


class StoreIOError(SecretsError):
    """Reading or writing a store failed."""
    pass


class ConcurrentModificationError(StoreIOError):
    """Store file changed on disk since it was opened."""
    pass


class CryptoError(SecretsError):
    """Decryption failed."""
    pass


class WrongPassphraseError(CryptoError):
    """The passphrase does not match the one the file was encrypted with."""
    pass


class CorruptedError(CryptoError):
    """The file is not a valid encrypted container."""
    pass


class NotFoundError(SecretsError):
    """Something the caller asked for does not exist."""
    pass


class SecretNotFoundError(NotFoundError):
    """Secret name not present in the store."""
    pass


class EnvFileNotFoundError(NotFoundError):
    """Import source file does not exist."""
    pass


class CommandDeclinedError(SecretsError):
    """User refused to run a suspicious command."""
    pass


class ExecError(SecretsError):
    """Launching the target command failed."""
    pass


class CommandNotFoundError(ExecError):
    """The command could not be resolved on PATH."""
    pass


class ExecFailureError(ExecError):
    """The operating system refused to start the command."""
    pass
