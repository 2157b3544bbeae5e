class ArchMcpError(Exception):
    """Base class for every error raised by the data source clients."""


class RemoteError(ArchMcpError):
    """The remote API could not be reached, timed out, or returned a non-success status."""


class FormatError(ArchMcpError):
    """The remote payload is missing the expected shape."""


class InvalidInputError(ArchMcpError):
    """A tool argument passed schema validation but cannot be interpreted."""
