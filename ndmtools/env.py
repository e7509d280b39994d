"""Settings read from the process environment."""

from __future__ import annotations

import os

INSTALL_CRD_ENV = "OPENEBS_IO_INSTALL_CRD"

_INSTALL_CRD_DEFAULT = True

_TRUE_VALUES = frozenset({"1", "t", "T", "TRUE", "true", "True"})


def parse_bool(value):
    """Return True for the usual spellings of true; anything else is False."""
    return value in _TRUE_VALUES


def is_install_crd_enabled(environ=None):
    """Whether the custom resource definitions should be installed."""
    if environ is None:
        environ = os.environ
    value = environ.get(INSTALL_CRD_ENV, "")
    if not value:
        return _INSTALL_CRD_DEFAULT
    return parse_bool(value)