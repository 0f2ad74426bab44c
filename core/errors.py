"""Exception types raised by the detection engine."""


class StackAnalyserError(Exception):
    """Base class for all analyser errors."""


class ConfigurationError(StackAnalyserError):
    """A rule, category or scan configuration is malformed.

    Raised before any traversal starts; a scan never begins with a corrupt rule set.
    """


class ScanCancelledError(StackAnalyserError):
    """The caller's cancellation signal was observed between two directories."""


class NodeClosedError(StackAnalyserError):
    """A component node was mutated after its subtree finished processing."""
