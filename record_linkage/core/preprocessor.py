"""Value normalization applied before comparing or blocking."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Type, Union
import unicodedata

import pandas as pd
import regex as re
from dateutil import parser

from record_linkage.core.errors import ConfigurationError

_PUNCTUATION = re.compile(r'[^\p{L}\p{N}\s]')
_WHITESPACE = re.compile(r'\s+')


def is_missing(value: Any) -> bool:
    """None and pandas missing markers (NaN, NaT, pd.NA) count as absent."""
    return value is None or (not isinstance(value, str) and pd.isna(value))


def strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize('NFD', text)
    return ''.join(c for c in decomposed if unicodedata.category(c) != 'Mn')


class Preprocessor(Protocol):
    """Anything that maps a raw value to a normalized string."""

    def process(self, value: Any) -> Optional[str]:
        """Normalize a value; missing values stay None."""
        ...


class BasePreprocessor(ABC):
    """
    Normalizes present values; absent values are passed through as None.

    Subclasses implement ``normalize`` on the string form of the value and
    may themselves return None for values they cannot make sense of.
    """

    def process(self, value: Any) -> Optional[str]:
        if is_missing(value):
            return None
        return self.normalize(str(value))

    @abstractmethod
    def normalize(self, text: str) -> Optional[str]:
        pass

    def __call__(self, value: Any) -> Optional[str]:
        return self.process(value)


class LowerCasePreprocessor(BasePreprocessor):
    """Lower-cases and strips values."""

    def normalize(self, text: str) -> Optional[str]:
        return text.strip().lower()


class NamePreprocessor(BasePreprocessor):
    """Turns punctuation into spaces and collapses whitespace; optionally folds case and accents."""

    def __init__(self, lowercase: bool = True, remove_accents: bool = True):
        self.lowercase = lowercase
        self.remove_accents = remove_accents

    def normalize(self, text: str) -> Optional[str]:
        if self.lowercase:
            text = text.lower()
        if self.remove_accents:
            text = strip_accents(text)
        return ' '.join(_PUNCTUATION.sub(' ', text).split())


class PostalCodePreprocessor(BasePreprocessor):
    """Removes all whitespace from postal codes, upper-casing them by default."""

    def __init__(self, uppercase: bool = True):
        self.uppercase = uppercase

    def normalize(self, text: str) -> Optional[str]:
        code = _WHITESPACE.sub('', text)
        return code.upper() if self.uppercase else code


_DATE_TRUNCATIONS: Dict[str, Callable[[datetime], datetime]] = {
    'month': lambda dt: dt.replace(day=1),
    'quarter': lambda dt: dt.replace(month=3 * ((dt.month - 1) // 3) + 1, day=1),
    'year': lambda dt: dt.replace(month=1, day=1),
}


class DatePreprocessor(BasePreprocessor):
    """
    Rewrites dates in ISO format, optionally truncated to month, quarter or year.

    Without explicit formats, dates are parsed with dateutil. Values that
    cannot be parsed become None, so comparators treat them as missing.
    """

    def __init__(
        self,
        date_format: Optional[Union[str, Sequence[str]]] = None,
        include_time: bool = False,
        normalize_to: Optional[str] = None
    ):
        if normalize_to is not None and normalize_to not in _DATE_TRUNCATIONS:
            raise ConfigurationError(
                f"Unknown date normalization {normalize_to!r}, "
                f"expected one of {sorted(_DATE_TRUNCATIONS)}"
            )
        self.formats: List[str] = [date_format] if isinstance(date_format, str) else list(date_format or [])
        self.include_time = include_time
        self.normalize_to = normalize_to

    def _parse(self, text: str) -> Optional[datetime]:
        if not self.formats:
            try:
                return parser.parse(text)
            except (ValueError, OverflowError):
                return None
        for fmt in self.formats:
            try:
                return datetime.strptime(text, fmt)
            except ValueError:
                continue
        return None

    def normalize(self, text: str) -> Optional[str]:
        parsed = self._parse(text.strip())
        if parsed is None:
            return None
        if self.normalize_to is not None:
            parsed = _DATE_TRUNCATIONS[self.normalize_to](parsed)
        return parsed.strftime('%Y-%m-%d %H:%M:%S' if self.include_time else '%Y-%m-%d')


class PreprocessorRegistry:
    """Creates preprocessors by name, e.g. from configuration files."""

    DEFAULTS: Dict[str, Type[BasePreprocessor]] = {
        'lower_case': LowerCasePreprocessor,
        'name': NamePreprocessor,
        'postal_code': PostalCodePreprocessor,
        'date': DatePreprocessor,
    }

    def __init__(self):
        self._classes: Dict[str, Type[BasePreprocessor]] = dict(self.DEFAULTS)

    @property
    def names(self) -> List[str]:
        return sorted(self._classes)

    def register(self, name: str, preprocessor_class: Type[BasePreprocessor]) -> None:
        self._classes[name] = preprocessor_class

    def create(self, name: str, **kwargs: Any) -> BasePreprocessor:
        """
        Instantiate the preprocessor registered under ``name``.

        Raises:
            ConfigurationError: If no preprocessor is registered under that name
        """
        if name not in self._classes:
            raise ConfigurationError(
                f"Unknown preprocessor {name!r}, expected one of {self.names}"
            )
        return self._classes[name](**kwargs)


registry = PreprocessorRegistry()
