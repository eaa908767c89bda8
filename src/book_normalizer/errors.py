"""Exceptions raised while parsing source documents."""


class BookNormalizerError(Exception):
    """Base class for book-normalizer errors."""


class ParseError(BookNormalizerError):
    """A source document could not be parsed."""

    def __init__(self, stage: str, message: str):
        self.stage = stage
        self.message = message
        super().__init__(f"{stage} parse failed: {message}")


class UnsupportedFormatError(ParseError, ValueError):
    """File extension has no registered parser."""

    def __init__(self, suffix: str, supported: list[str]):
        self.suffix = suffix
        self.supported = supported
        super().__init__(
            "Format detection",
            f"unsupported format {suffix or '(none)'}. "
            f"Supported formats: {', '.join(supported)}",
        )
