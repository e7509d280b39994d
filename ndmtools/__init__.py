"""Block device hierarchy, mount lookup, GPT partitioning, claim selection and metrics helpers."""

__version__ = "0.1.0"