from .link import Link
from .click import Click

__all__ = ["Link", "Click"]
