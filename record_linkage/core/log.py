"""Logger lifecycle for matching runs."""

import logging
from typing import Dict, List, Optional, Tuple

from record_linkage.core.errors import ConfigurationError

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

# profile -> (level, write to file)
PROFILES: Dict[str, Tuple[int, bool]] = {
    'default': (logging.INFO, False),
    'trace': (logging.DEBUG, False),
    'info_file': (logging.INFO, True),
    'trace_file': (logging.DEBUG, True),
}


class LogManager:
    """
    Attaches handlers to a logger for the duration of a run.

    Components receive the returned logger explicitly; ``detach`` removes
    exactly the handlers that ``attach`` added.
    """

    def __init__(
        self,
        name: str = 'record_linkage',
        filename: str = 'record_linkage.log'
    ):
        self.name = name
        self.filename = filename
        self._handlers: List[logging.Handler] = []
        self._previous_level: Optional[int] = None

    @property
    def logger(self) -> logging.Logger:
        return logging.getLogger(self.name)

    def attach(self, profile: str = 'default') -> logging.Logger:
        """
        Configure the logger for a profile.

        Args:
            profile: One of 'default', 'trace', 'info_file', 'trace_file'

        Returns:
            logging.Logger: The configured logger

        Raises:
            ConfigurationError: If the profile is unknown
        """
        if profile not in PROFILES:
            raise ConfigurationError(
                f"Unknown logging profile {profile!r}, "
                f"expected one of {sorted(PROFILES)}"
            )
        self.detach()

        level, to_file = PROFILES[profile]
        logger = self.logger
        formatter = logging.Formatter(LOG_FORMAT)

        handlers: List[logging.Handler] = [logging.StreamHandler()]
        if to_file:
            handlers.append(logging.FileHandler(self.filename))
        for handler in handlers:
            handler.setFormatter(formatter)
            handler.setLevel(level)
            logger.addHandler(handler)

        self._previous_level = logger.level
        logger.setLevel(level)
        self._handlers = handlers
        return logger

    def detach(self) -> None:
        """Remove and close the handlers added by ``attach``."""
        logger = self.logger
        for handler in self._handlers:
            logger.removeHandler(handler)
            handler.close()
        self._handlers = []
        if self._previous_level is not None:
            logger.setLevel(self._previous_level)
            self._previous_level = None

    def __enter__(self) -> logging.Logger:
        return self.attach()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.detach()
