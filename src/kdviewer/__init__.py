"""
kdviewer
========
Interactive point-cloud viewer built around a k-d tree spatial index.
"""
__version__ = "0.1.0"
