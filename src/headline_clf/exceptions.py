"""Errors raised by the preprocessing pipeline and artifact loaders."""


class LabelNotFound(ValueError):
    """A label row references a class missing from the class mapping."""

    def __init__(self, label: str) -> None:
        super().__init__(f"Label not found: {label}")
        self.label = label


class ArrayConversionError(ValueError):
    """A sequence could not be coerced to the fixed width a numeric primitive expects."""


class VocabularyLoadError(IOError):
    """A persisted vocabulary or class mapping could not be read."""
