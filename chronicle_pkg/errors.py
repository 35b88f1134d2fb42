"""
Build errors for Chronicle.

Every error here is fatal: the build stops and the offending source
path (or paths) is reported.
"""


class BuildError(Exception):
    """Base class for errors that abort a site build."""


class ConfigError(BuildError):
    """Invalid configuration value or unknown environment."""


class MalformedFilenameError(BuildError):
    """A source file name does not carry a valid date and title slug."""

    def __init__(self, path, reason=None):
        self.path = path
        message = f"Malformed source filename: {path}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class MissingFrontMatterError(BuildError):
    """A required front-matter field is missing from a source file."""

    def __init__(self, path, field):
        self.path = path
        self.field = field
        super().__init__(f"Missing required front-matter field '{field}' in {path}")


class PermalinkCollisionError(BuildError):
    """Two content items resolve to the same output permalink."""

    def __init__(self, permalink, first_path, second_path):
        self.permalink = permalink
        self.paths = (first_path, second_path)
        super().__init__(
            f"Permalink collision on '{permalink}': {first_path} and {second_path}"
        )


class UnknownPlaceholderError(BuildError):
    """A permalink pattern uses a placeholder the resolver does not know."""

    def __init__(self, placeholder, pattern):
        self.placeholder = placeholder
        self.pattern = pattern
        super().__init__(f"Unknown placeholder '{{{placeholder}}}' in pattern '{pattern}'")


class MissingFieldError(BuildError):
    """A placeholder refers to a field that is absent on the content item."""

    def __init__(self, field, path=None):
        self.field = field
        self.path = path
        where = f" for {path}" if path else ""
        super().__init__(f"Cannot resolve '{{{field}}}'{where}: field is empty")
