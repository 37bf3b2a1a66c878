class EnvoyReadError(Exception):
    """Base class for every error raised while reading an Envoy config dump."""


class MalformedDocument(EnvoyReadError):
    """
    Raised when the raw admin response cannot be trusted at all: it is not
    valid JSON, it is not an object, or the top-level ``configs`` array is
    missing. No section can be extracted from such a document.
    """


class MalformedSection(EnvoyReadError):
    """
    Raised when a single section is present but does not have the shape
    needed to extract it, e.g. a field expected to be a list holds a scalar.

    :param kind: The entity kind whose section failed (``clusters``,
        ``endpoints``, ...).
    :type kind: str
    :param detail: Human-readable description of the problem.
    :type detail: str
    """

    def __init__(self, kind, detail):
        self.kind = kind
        self.detail = detail
        super().__init__(f"malformed {kind} section: {detail}")


class UnknownOutputMode(EnvoyReadError):
    """Raised for an output mode other than ``table``, ``json`` or ``raw``."""

    def __init__(self, mode, choices):
        self.mode = mode
        self.choices = tuple(choices)
        super().__init__(
            f"unknown output mode {mode!r}: must be one of {', '.join(self.choices)}"
        )


# Nothing raises this yet; every filter combination currently composes.
class UnsupportedFilterCombination(EnvoyReadError):
    pass
