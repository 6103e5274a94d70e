"""chainreg: a decentralized, identity-bound package registry."""

__version__ = "0.1.0"
