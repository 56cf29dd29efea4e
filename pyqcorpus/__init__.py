"""Previous-year exam question corpus: crawl, extract, segment, store, and maintain."""

__version__ = "0.1.0"
