"""ccli: wallet-connected command line client for a remote counter contract."""

__version__ = "0.1.0"
