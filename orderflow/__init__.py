"""Order pipeline service: sales orders from entry through production, dispatch, installation, accounts and billing."""

__version__ = "1.0.0"
