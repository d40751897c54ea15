"""DocScout - relevance search over local and GitHub markdown docs."""

__version__ = "0.1.0"
