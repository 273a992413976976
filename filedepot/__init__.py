"""filedepot: upload, commit and download files over HTTP."""

__version__ = "0.1.0"
