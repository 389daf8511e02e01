# runner/errors.py
# This file is part of Tessera - A Linearizability Test Harness
#
# Fatal errors that abort a test run before checking


class HarnessError(Exception):
    """Base class for errors that abort a test run."""


class SetupError(HarnessError):
    """Raised when the cluster cannot be reached before load starts."""


class NemesisError(HarnessError):
    """Raised when a partition could not be applied or healed."""
