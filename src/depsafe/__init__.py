"""depsafe: suppress known false positives from dependency vulnerability scans."""

__version__ = "0.1.0"
