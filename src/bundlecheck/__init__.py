"""bundlecheck - Multi-authority validation for health-data bundles.

bundlecheck walks parsed FHIR-style bundles without binding them to typed
objects, checks them against schema metadata, user-authored rules and an
optional object-model validator, and reports every violation with a
deterministic explanation.
"""

__version__ = "0.1.0"
__author__ = "bundlecheck contributors"
__description__ = "Multi-authority validation pipeline for health-data bundles"

from bundlecheck.config import BundleCheckConfig, ValidationOptions

__all__ = [
    "__version__",
    "__author__",
    "__description__",
    "BundleCheckConfig",
    "ValidationOptions",
]
