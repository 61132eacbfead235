"""Exceptions raised by catalog comparison."""


class DataSourceError(Exception):
    """A catalog could not be read from its database or snapshot file."""


class DuplicateKeyError(ValueError):
    """A catalog holds two entities with the same natural key in one scope."""


class ConfigError(ValueError):
    """A configuration file is malformed or names an unknown option."""
