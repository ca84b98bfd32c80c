"""
=============================================================================
MIDDLEWARE
=============================================================================

Steps that run before the router, in order:

    CORSStep:
        Adds CORS headers to the pending response. Answers OPTIONS
        preflight requests directly with 204.

    AuthStep:
        Requires an Authorization header (and, when configured, the right
        bearer secret). Responds 401 otherwise.

Any step that responds ends the pipeline. See base.py.

=============================================================================
"""

from .base import Step, Pipeline, FunctionStep, step
from .cors import CORSStep
from .auth import AuthStep

__all__ = [
    "Step",
    "Pipeline",
    "FunctionStep",
    "step",
    "CORSStep",
    "AuthStep",
]
