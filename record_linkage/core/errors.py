"""Exceptions raised by the record linkage core."""


class MatchingError(Exception):
    """Base class for all record linkage errors."""


class ConfigurationError(MatchingError, ValueError):
    """Invalid thresholds, empty rules or inconsistent schemas."""


class DuplicateIdError(MatchingError, KeyError):
    """A record id is already present in the dataset."""

    def __init__(self, record_id: str, provenance: str = ''):
        self.record_id = record_id
        self.provenance = provenance
        super().__init__(
            f"Duplicate record id {record_id!r} in dataset {provenance!r}"
        )


class NotTrainedError(MatchingError):
    """A learned matching rule was applied before it was trained."""


class MissingAttributeError(MatchingError, KeyError):
    """A strict comparator met a record without the compared attribute."""

    def __init__(self, attribute_name: str, record_id: str):
        self.attribute_name = attribute_name
        self.record_id = record_id
        super().__init__(
            f"Attribute {attribute_name!r} is not part of record {record_id!r}"
        )


class ClassifierError(MatchingError):
    """The underlying classifier failed to fit or predict."""


class MatchingCancelled(MatchingError):
    """A matching run was cancelled between batches."""
