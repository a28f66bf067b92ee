"""Stella deposit client.

Authenticates a wallet against an anchor and drives interactive deposit
flows to completion.
"""

__version__ = "0.1.0"
