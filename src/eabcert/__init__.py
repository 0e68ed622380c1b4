"""eabcert: Google Public CA certificates through EAB-bound ACME accounts."""

__version__ = "1.0.0"
