"""API types, CRD helpers and manifest bootstrapping for kube-bind.io API bindings."""

__version__ = "0.1.0"

__all__ = [
    "apierrors",
    "binding",
    "bootstrap",
    "crd",
    "discovery",
    "export",
    "helpers",
    "meta",
    "request",
]