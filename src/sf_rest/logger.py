"""Loggers of the sf_rest package, all children of the ``sf_rest`` logger."""

import logging

pkg_root = logging.getLogger("sf_rest")
# output is configured by the application
pkg_root.addHandler(logging.NullHandler())


def getLogger(name: str | None = None) -> logging.Logger:
    """``getLogger("auth")`` is the ``sf_rest.auth`` logger."""
    if not name:
        return pkg_root
    return pkg_root.getChild(name)
