"""SLC Compiler - turns status line configs into bash scripts.

``slc.compiler.compiler.Compiler`` runs the full pipeline; this package root
only exposes the IR so encoders can import it without a cycle.
"""

from slc.compiler.spec import CompiledScript, FeatureFragment, JqField

__all__ = ["CompiledScript", "FeatureFragment", "JqField"]
