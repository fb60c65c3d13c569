"""Gig Match - hybrid scoring and stable matching of gigs to creative talent."""

__version__ = "0.1.0"
