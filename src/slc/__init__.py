"""slc - status line compiler.

Compiles a declarative status line configuration into a single bash script,
optimizes and validates it, and caches the result.
"""

__version__ = "0.1.0"
