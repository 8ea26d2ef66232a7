"""FTP client library: control and data connections, listings, transfers and tree walking."""

__version__ = "0.1.0"